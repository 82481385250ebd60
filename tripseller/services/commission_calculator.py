from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from tripseller.errors import InvalidInput
from tripseller.models.enums import CommissionType

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _to_decimal(value, label):
    if isinstance(value, bool):
        raise InvalidInput(f"{label} must be a number.")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"{label} must be a number.") from exc
    if not parsed.is_finite():
        raise InvalidInput(f"{label} must be a finite number.")
    return parsed


def _parse_commission_type(commission_type):
    try:
        return CommissionType(str(commission_type or "").strip().lower())
    except ValueError as exc:
        raise InvalidInput(
            f"Unknown commission type {commission_type!r}. Expected one of: {', '.join(CommissionType.values())}."
        ) from exc


def calculate_commission(price_per_person, commission_type, commission_value):
    """Commission owed for one booking under a trip's pricing rule.

    ``percentage`` takes ``commission_value`` percent of the price, ``fixed``
    pays ``commission_value`` regardless of price. The result is rounded to
    cents once; halves are always derived from it with ``split_commission``.
    """
    price = _to_decimal(price_per_person, "Price per person")
    value = _to_decimal(commission_value, "Commission value")
    kind = _parse_commission_type(commission_type)

    if price < 0:
        raise InvalidInput("Price per person cannot be negative.")
    if value < 0:
        raise InvalidInput("Commission value cannot be negative.")

    if kind is CommissionType.PERCENTAGE:
        if value > HUNDRED:
            raise InvalidInput("Percentage commission must be between 0 and 100.")
        amount = price * value / HUNDRED
    else:
        amount = value
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def split_commission(total):
    """Split a commission total into (first half, second half) that sum to it exactly."""
    total = _to_decimal(total, "Commission total").quantize(CENT, rounding=ROUND_HALF_UP)
    if total < 0:
        raise InvalidInput("Commission total cannot be negative.")
    first = (total / 2).quantize(CENT, rounding=ROUND_DOWN)
    return first, total - first


def commission_for_trip(trip):
    return calculate_commission(trip.price_per_person, trip.commission_type, trip.commission_value)

from dataclasses import dataclass, field
from typing import List

from flask import current_app

from tripseller.errors import InvalidInput, InvalidState, NotFound
from tripseller.extensions import db
from tripseller.models import Booking, CommissionPayment
from tripseller.models.base import utcnow
from tripseller.models.enums import CoinSourceType, CommissionPaymentStatus, PaymentStatus
from tripseller.services.coin_service import CoinService
from tripseller.services.commission_ledger import CommissionLedger
from tripseller.services.notification_service import NotificationService
from tripseller.services.platform_service import PlatformService

# Forward order of the payment lifecycle; refunded sits outside it and is terminal.
FORWARD_ORDER = {
    PaymentStatus.PENDING: 0,
    PaymentStatus.PARTIAL: 1,
    PaymentStatus.COMPLETED: 2,
}


@dataclass
class TransitionResult:
    booking: Booking
    previous_status: PaymentStatus
    commission_payments: List[CommissionPayment] = field(default_factory=list)
    newly_paid: List[CommissionPayment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "booking_id": self.booking.id,
            "previous_status": self.previous_status.value,
            "payment_status": self.booking.payment_status,
            "commission_payments": [row.to_dict() for row in self.commission_payments],
            "warnings": self.warnings,
        }


def parse_payment_status(raw):
    try:
        return PaymentStatus(str(raw or "").strip().lower())
    except ValueError as exc:
        raise InvalidInput(
            f"Invalid payment status {raw!r}. Allowed values: {', '.join(PaymentStatus.values())}."
        ) from exc


def check_transition(current, target):
    """Reject moves the payment lifecycle does not allow.

    Same-status requests are allowed and re-apply that status's side effects,
    which the ledger makes idempotent.
    """
    if current is PaymentStatus.REFUNDED:
        if target is PaymentStatus.REFUNDED:
            return
        raise InvalidState("Refunded bookings cannot change payment status.")
    if target is PaymentStatus.REFUNDED:
        return
    if FORWARD_ORDER[target] < FORWARD_ORDER[current]:
        raise InvalidState(f"Payment status cannot move back from {current.value} to {target.value}.")


class PaymentStatusService:
    @staticmethod
    def _commission_effects(booking, target):
        """Commission rows that must exist and be paid once ``booking`` reaches ``target``."""
        if target is PaymentStatus.PENDING:
            return []
        if target is PaymentStatus.PARTIAL:
            partial = CommissionLedger.ensure_partial(booking)
            return [CommissionLedger.mark_paid(booking.id, partial.payment_type)]
        if target is PaymentStatus.COMPLETED:
            partial, final = CommissionLedger.ensure_pair(booking)
            return [
                CommissionLedger.mark_paid(booking.id, partial.payment_type),
                CommissionLedger.mark_paid(booking.id, final.payment_type),
            ]
        if target is PaymentStatus.REFUNDED:
            # Seller keeps whatever commission was already paid; nothing is clawed back.
            return []
        raise InvalidInput(f"Unhandled payment status {target!r}.")

    @staticmethod
    def _stamp(booking, target, now):
        if target is PaymentStatus.PARTIAL and booking.partial_paid_at is None:
            booking.partial_paid_at = now
        elif target is PaymentStatus.COMPLETED and booking.completed_at is None:
            booking.completed_at = now
        elif target is PaymentStatus.REFUNDED and booking.refunded_at is None:
            booking.refunded_at = now

    @staticmethod
    def transition(booking_id, new_status, actor=None):
        target = parse_payment_status(new_status)
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found.")

        current = parse_payment_status(booking.payment_status)
        check_transition(current, target)

        result = TransitionResult(booking=booking, previous_status=current)
        if booking.seller_id is not None:
            already_paid = {row.id for row in booking.commission_payments if row.status == CommissionPaymentStatus.PAID.value}
            result.commission_payments = PaymentStatusService._commission_effects(booking, target)
            result.newly_paid = [row for row in result.commission_payments if row.id not in already_paid]
            CommissionLedger.assert_conserved(booking)

        booking.payment_status = target.value
        PaymentStatusService._stamp(booking, target, utcnow())
        db.session.flush()

        current_app.logger.info(
            "Booking %s payment status %s -> %s by %s",
            booking.id,
            current.value,
            target.value,
            getattr(actor, "id", None),
        )

        if booking.seller_id is not None and current is not target:
            PaymentStatusService._secondary_effects(booking, target, result)

        db.session.commit()
        return result

    @staticmethod
    def _secondary_effects(booking, target, result):
        if result.newly_paid:
            total = sum(row.amount for row in result.newly_paid)
            NotificationService.run_secondary(
                "seller notification",
                lambda: NotificationService.push(
                    booking.seller_id,
                    "Commission paid",
                    f"Commission of {total} for booking #{booking.id} is marked as paid.",
                    category="commission",
                    booking_id=booking.id,
                ),
                result.warnings,
            )

        if target is PaymentStatus.COMPLETED:
            coins = PlatformService.coins_per_completed_booking()
            if coins > 0:
                NotificationService.run_secondary(
                    "coin award",
                    lambda: CoinService.award(
                        booking.seller_id,
                        coins,
                        source_type=CoinSourceType.BOOKING,
                        source_id=booking.id,
                        description=f"Completed booking #{booking.id}",
                    ),
                    result.warnings,
                )

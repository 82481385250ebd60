from decimal import Decimal

from flask import current_app
from sqlalchemy import exists, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tripseller.errors import (
    AlreadyExists,
    AppError,
    InvalidInput,
    InvalidState,
    NoSellerAttached,
    NotFound,
    PartialFailure,
    PaymentNotFound,
)
from tripseller.extensions import db
from tripseller.models import Booking, CommissionPayment
from tripseller.models.base import as_utc, utcnow
from tripseller.models.enums import CommissionPaymentStatus, CommissionPaymentType
from tripseller.services.commission_calculator import CENT, commission_for_trip, split_commission

HALF_PERCENTAGE = Decimal("50.00")

PAYMENT_TYPE_ALIASES = {
    "partial": CommissionPaymentType.PARTIAL,
    "deposit": CommissionPaymentType.PARTIAL,
    "deposit_commission": CommissionPaymentType.PARTIAL,
    "partial_commission": CommissionPaymentType.PARTIAL,
    "full": CommissionPaymentType.FINAL,
    "final": CommissionPaymentType.FINAL,
    "final_commission": CommissionPaymentType.FINAL,
}


def _money(value):
    return Decimal(str(value or 0)).quantize(CENT)


class CommissionLedger:
    """Commission payment rows: at most one per (booking, payment type).

    Methods named like queries or ``get_or_create``/``mark_paid`` only flush;
    the admin entry points (``mark_paid_with_backfill``, ``backfill_missing``)
    commit.
    """

    @staticmethod
    def normalize_payment_type(raw):
        key = str(raw or "").strip().lower()
        if key not in PAYMENT_TYPE_ALIASES:
            raise InvalidInput(f"Unknown commission payment type {raw!r}.")
        return PAYMENT_TYPE_ALIASES[key]

    @staticmethod
    def _find(booking_id, payment_type):
        return CommissionPayment.query.filter_by(booking_id=booking_id, payment_type=payment_type).first()

    @staticmethod
    def _insert(row):
        try:
            with db.session.begin_nested():
                db.session.add(row)
        except IntegrityError as exc:
            raise AlreadyExists(
                f"Commission payment {row.payment_type} already exists for booking {row.booking_id}."
            ) from exc
        return row

    @staticmethod
    def get_or_create(booking_id, seller_id, payment_type, amount, percentage=HALF_PERCENTAGE):
        payment_type = CommissionLedger.normalize_payment_type(payment_type).value
        existing = CommissionLedger._find(booking_id, payment_type)
        if existing:
            return existing

        row = CommissionPayment(
            booking_id=booking_id,
            seller_id=seller_id,
            payment_type=payment_type,
            amount=_money(amount),
            percentage=percentage,
            status=CommissionPaymentStatus.PENDING.value,
        )
        try:
            return CommissionLedger._insert(row)
        except AlreadyExists:
            # Lost the race to a concurrent request; its row is the one we want.
            winner = CommissionLedger._find(booking_id, payment_type)
            if winner is None:
                raise
            current_app.logger.info(
                "Commission payment %s for booking %s created concurrently; reusing row %s",
                payment_type,
                booking_id,
                winner.id,
            )
            return winner

    @staticmethod
    def total_commission(booking):
        if booking.commission_amount is not None:
            return _money(booking.commission_amount)

        trip = booking.trip
        if trip is None:
            raise NotFound(f"Trip not found for booking {booking.id}.")
        if booking.commission_payments.count():
            raise InvalidState(f"Booking {booking.id} has commission payments but no commission total.")
        booking.commission_amount = commission_for_trip(trip)
        return _money(booking.commission_amount)

    @staticmethod
    def ensure_partial(booking):
        if booking.seller_id is None:
            raise NoSellerAttached(f"Booking {booking.id} has no seller.")
        first, _second = split_commission(CommissionLedger.total_commission(booking))
        return CommissionLedger.get_or_create(booking.id, booking.seller_id, CommissionPaymentType.PARTIAL, first)

    @staticmethod
    def ensure_pair(booking):
        if booking.seller_id is None:
            raise NoSellerAttached(f"Booking {booking.id} has no seller.")
        first, second = split_commission(CommissionLedger.total_commission(booking))
        partial = CommissionLedger.get_or_create(booking.id, booking.seller_id, CommissionPaymentType.PARTIAL, first)
        final = CommissionLedger.get_or_create(booking.id, booking.seller_id, CommissionPaymentType.FINAL, second)
        CommissionLedger.assert_conserved(booking)
        return partial, final

    @staticmethod
    def mark_paid(booking_id, payment_type):
        payment_type = CommissionLedger.normalize_payment_type(payment_type).value
        row = CommissionLedger._find(booking_id, payment_type)
        if row is None:
            raise PaymentNotFound(f"No {payment_type} commission payment for booking {booking_id}.")
        if row.status == CommissionPaymentStatus.CANCELLED.value:
            raise InvalidState(f"The {payment_type} commission payment for booking {booking_id} was cancelled.")
        if row.status == CommissionPaymentStatus.PAID.value:
            return row

        affected = (
            CommissionPayment.query.filter_by(
                booking_id=booking_id,
                payment_type=payment_type,
                status=CommissionPaymentStatus.PENDING.value,
            ).update(
                {"status": CommissionPaymentStatus.PAID.value, "paid_at": utcnow()},
                synchronize_session=False,
            )
        )
        db.session.refresh(row)
        if affected == 0 and row.status != CommissionPaymentStatus.PAID.value:
            raise PaymentNotFound(f"No payable {payment_type} commission payment for booking {booking_id}.")
        return row

    @staticmethod
    def mark_paid_with_backfill(booking_id, payment_type):
        payment_type = CommissionLedger.normalize_payment_type(payment_type)
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found.")
        if booking.seller_id is None:
            raise NoSellerAttached(f"Booking {booking_id} has no seller.")

        if booking.commission_payments.count() == 0:
            current_app.logger.info("Backfilling commission payments for booking %s", booking_id)
            CommissionLedger.ensure_pair(booking)

        row = CommissionLedger.mark_paid(booking_id, payment_type)
        CommissionLedger.assert_conserved(booking)
        db.session.commit()
        return row

    @staticmethod
    def list_for_booking(booking_id):
        return (
            CommissionPayment.query.filter_by(booking_id=booking_id)
            .order_by(CommissionPayment.created_at.asc(), CommissionPayment.id.asc())
            .all()
        )

    @staticmethod
    def _sum(*criteria):
        total = db.session.query(func.coalesce(func.sum(CommissionPayment.amount), 0)).filter(*criteria).scalar()
        return _money(total)

    @staticmethod
    def sum_paid(booking_id):
        return CommissionLedger._sum(
            CommissionPayment.booking_id == booking_id,
            CommissionPayment.status == CommissionPaymentStatus.PAID.value,
        )

    @staticmethod
    def sum_outstanding(booking_id):
        return CommissionLedger._sum(
            CommissionPayment.booking_id == booking_id,
            CommissionPayment.status != CommissionPaymentStatus.CANCELLED.value,
        )

    @staticmethod
    def assert_conserved(booking):
        if booking.commission_amount is None:
            return
        committed = CommissionLedger.sum_outstanding(booking.id)
        if committed > _money(booking.commission_amount):
            current_app.logger.error(
                "Commission conservation breached for booking %s: committed %s > total %s",
                booking.id,
                committed,
                booking.commission_amount,
            )
            raise PartialFailure(f"Commission payments for booking {booking.id} exceed its commission total.")

    @staticmethod
    def seller_summary(seller_id):
        rows = CommissionPayment.query.filter_by(seller_id=seller_id).all()
        month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        summary = {
            "total_earned": Decimal("0.00"),
            "pending_amount": Decimal("0.00"),
            "cancelled_amount": Decimal("0.00"),
            "this_month_earned": Decimal("0.00"),
        }
        for row in rows:
            amount = _money(row.amount)
            if row.status == CommissionPaymentStatus.PAID.value:
                summary["total_earned"] += amount
                if row.paid_at and as_utc(row.paid_at) >= month_start:
                    summary["this_month_earned"] += amount
            elif row.status == CommissionPaymentStatus.PENDING.value:
                summary["pending_amount"] += amount
            else:
                summary["cancelled_amount"] += amount
        summary["bookings_count"] = len({row.booking_id for row in rows})
        return summary

    @staticmethod
    def backfill_missing():
        has_rows = exists().where(CommissionPayment.booking_id == Booking.id)
        bookings = Booking.query.filter(Booking.seller_id.isnot(None)).filter(~has_rows).order_by(Booking.id).all()

        created = 0
        errors = []
        for booking in bookings:
            try:
                with db.session.begin_nested():
                    CommissionLedger.ensure_pair(booking)
                created += 1
            except (AppError, SQLAlchemyError) as exc:
                current_app.logger.warning("Commission backfill failed for booking %s: %s", booking.id, exc)
                errors.append({"booking_id": booking.id, "error": str(exc)})
        db.session.commit()
        return {"created": created, "errors": errors}

    @staticmethod
    def reassign_seller(booking, seller_id):
        rows = booking.commission_payments.all()
        if any(row.status == CommissionPaymentStatus.PAID.value for row in rows):
            raise InvalidState("Seller cannot change once commission has been paid.")
        for row in rows:
            if seller_id is None:
                db.session.delete(row)
            else:
                row.seller_id = seller_id
        booking.seller_id = seller_id
        db.session.flush()

    @staticmethod
    def delete_for_booking(booking_id):
        return CommissionPayment.query.filter_by(booking_id=booking_id).delete()

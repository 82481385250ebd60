from flask import current_app

from tripseller.errors import InvalidInput, NotFound
from tripseller.extensions import db
from tripseller.models import Booking, Customer, TripSchedule, UserProfile
from tripseller.models.base import utcnow
from tripseller.models.enums import SEAT_HOLDING_STATUSES, BookingStatus
from tripseller.services.commission_calculator import commission_for_trip
from tripseller.services.commission_ledger import CommissionLedger


class BookingService:
    @staticmethod
    def get_booking(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found.")
        return booking

    @staticmethod
    def _approved_seller(seller_id):
        seller = db.session.get(UserProfile, seller_id)
        if not seller or not seller.is_approved_seller:
            raise InvalidInput("Invalid or inactive seller.")
        return seller

    @staticmethod
    def seats_left(schedule):
        held = (
            Booking.query.filter(Booking.trip_schedule_id == schedule.id)
            .filter(Booking.status.in_(SEAT_HOLDING_STATUSES))
            .count()
        )
        return max(0, schedule.available_seats - held)

    @staticmethod
    def create_booking(schedule_id, customer, seller_id=None, notes=None, actor=None):
        if schedule_id is None:
            raise InvalidInput("trip_schedule_id is required.")
        schedule = db.session.get(TripSchedule, schedule_id)
        if not schedule or not schedule.is_active:
            raise NotFound("Trip schedule not found.")
        trip = schedule.trip
        if not trip or not trip.is_active:
            raise NotFound("Trip not found.")

        customer = customer or {}
        full_name = (customer.get("full_name") or "").strip()
        email = (customer.get("email") or "").strip().lower()
        if not full_name or not email:
            raise InvalidInput("Customer full name and email are required.")

        if BookingService.seats_left(schedule) < 1:
            raise InvalidInput("No seats left on this schedule.")

        seller = BookingService._approved_seller(seller_id) if seller_id is not None else None

        customer_row = Customer(
            full_name=full_name,
            email=email,
            phone=(customer.get("phone") or "").strip() or None,
            referred_by_seller_id=seller.id if seller else None,
        )
        db.session.add(customer_row)
        db.session.flush()

        booking = Booking(
            customer_id=customer_row.id,
            trip_schedule_id=schedule.id,
            seller_id=seller.id if seller else None,
            status=BookingStatus.INPROGRESS.value if actor is not None else BookingStatus.PENDING.value,
            payment_status="pending",
            total_amount=trip.price_per_person,
            commission_amount=commission_for_trip(trip),
            notes=(notes or "").strip() or None,
            booking_date=utcnow(),
        )
        db.session.add(booking)
        db.session.flush()

        if seller:
            CommissionLedger.ensure_pair(booking)

        db.session.commit()
        current_app.logger.info(
            "Booking %s created on schedule %s (seller=%s, commission=%s)",
            booking.id,
            schedule.id,
            booking.seller_id,
            booking.commission_amount,
        )
        return booking

    @staticmethod
    def update_status(booking_id, status, actor):
        try:
            status = BookingStatus((status or "").strip().lower())
        except ValueError as exc:
            raise InvalidInput(f"Invalid status. Allowed values: {', '.join(BookingStatus.values())}") from exc

        booking = BookingService.get_booking(booking_id)
        booking.status = status.value
        if status is BookingStatus.APPROVED:
            booking.approved_at = utcnow()
            booking.approved_by = actor.id
        db.session.commit()
        return booking

    @staticmethod
    def assign_seller(booking_id, seller_id):
        booking = BookingService.get_booking(booking_id)
        if seller_id is not None:
            BookingService._approved_seller(seller_id)
        CommissionLedger.reassign_seller(booking, seller_id)
        if seller_id is not None and booking.commission_payments.count() == 0:
            CommissionLedger.ensure_pair(booking)
        db.session.commit()
        return booking

    @staticmethod
    def delete_booking(booking_id):
        booking = BookingService.get_booking(booking_id)
        removed = CommissionLedger.delete_for_booking(booking.id)
        db.session.delete(booking)
        db.session.commit()
        current_app.logger.info("Booking %s deleted with %s commission payments", booking_id, removed)
        return removed

    @staticmethod
    def serialize(booking):
        trip = booking.trip
        return {
            "id": booking.id,
            "customer_id": booking.customer_id,
            "trip_schedule_id": booking.trip_schedule_id,
            "trip_title": trip.title if trip else None,
            "seller_id": booking.seller_id,
            "status": booking.status,
            "payment_status": booking.payment_status,
            "total_amount": str(booking.total_amount),
            "commission_amount": str(booking.commission_amount) if booking.commission_amount is not None else None,
            "commission_paid": str(CommissionLedger.sum_paid(booking.id)),
            "commission_payments": [row.to_dict() for row in CommissionLedger.list_for_booking(booking.id)],
            "created_at": booking.created_at.isoformat(),
        }

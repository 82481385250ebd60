from decimal import Decimal

import pytest

from tripseller.errors import InvalidInput, InvalidState, NotFound
from tripseller.extensions import db
from tripseller.models import Booking, CommissionPayment
from tripseller.services import BookingService, CommissionLedger

CUSTOMER = {"full_name": "Ravi Kumar", "email": "Ravi@Example.com", "phone": "9876543210"}


def test_create_booking_with_seller_precreates_commission(app, admin, seller, make_trip):
    _trip, schedule = make_trip(price="10000", commission_value="10")

    booking = BookingService.create_booking(schedule.id, CUSTOMER, seller_id=seller.id, actor=admin)

    assert booking.status == "inprogress"
    assert booking.total_amount == Decimal("10000")
    assert booking.commission_amount == Decimal("1000")
    assert booking.customer.email == "ravi@example.com"
    assert booking.customer.referred_by_seller_id == seller.id
    rows = CommissionLedger.list_for_booking(booking.id)
    assert sorted(row.amount for row in rows) == [Decimal("500"), Decimal("500")]
    assert all(row.status == "pending" for row in rows)


def test_create_booking_without_seller(app, make_trip):
    _trip, schedule = make_trip()

    booking = BookingService.create_booking(schedule.id, CUSTOMER)

    assert booking.status == "pending"
    assert booking.seller_id is None
    assert CommissionPayment.query.count() == 0


def test_create_booking_validation(app, make_user, make_trip):
    _trip, schedule = make_trip(seats=1)
    pending_seller = make_user(role="seller", status="pending")

    with pytest.raises(NotFound):
        BookingService.create_booking(schedule.id + 50, CUSTOMER)
    with pytest.raises(InvalidInput):
        BookingService.create_booking(schedule.id, {"full_name": "No Email"})
    with pytest.raises(InvalidInput):
        BookingService.create_booking(schedule.id, CUSTOMER, seller_id=pending_seller.id)
    db.session.rollback()

    BookingService.create_booking(schedule.id, CUSTOMER)
    with pytest.raises(InvalidInput):
        BookingService.create_booking(schedule.id, CUSTOMER)


def test_cancelled_bookings_release_seats(app, admin, make_trip):
    _trip, schedule = make_trip(seats=1)
    booking = BookingService.create_booking(schedule.id, CUSTOMER)

    BookingService.update_status(booking.id, "cancelled", admin)

    assert BookingService.seats_left(schedule) == 1


def test_update_status_stamps_approval(app, admin, make_booking):
    booking = make_booking()

    BookingService.update_status(booking.id, "approved", admin)

    assert booking.approved_by == admin.id
    assert booking.approved_at is not None
    with pytest.raises(InvalidInput):
        BookingService.update_status(booking.id, "shipped", admin)


def test_assign_and_remove_seller(app, seller, make_booking):
    booking = make_booking(seller=None)

    BookingService.assign_seller(booking.id, seller.id)
    assert CommissionPayment.query.filter_by(booking_id=booking.id, seller_id=seller.id).count() == 2

    BookingService.assign_seller(booking.id, None)
    assert booking.seller_id is None
    assert CommissionPayment.query.filter_by(booking_id=booking.id).count() == 0


def test_seller_cannot_change_after_payment(app, make_user, make_booking):
    first = make_user()
    second = make_user()
    booking = make_booking(seller=first)
    CommissionLedger.mark_paid_with_backfill(booking.id, "partial")

    with pytest.raises(InvalidState):
        BookingService.assign_seller(booking.id, second.id)


def test_delete_booking_removes_commission_rows(app, admin, seller, make_trip):
    _trip, schedule = make_trip()
    booking = BookingService.create_booking(schedule.id, CUSTOMER, seller_id=seller.id, actor=admin)
    booking_id = booking.id

    removed = BookingService.delete_booking(booking_id)

    assert removed == 2
    assert db.session.get(Booking, booking_id) is None
    assert CommissionPayment.query.filter_by(booking_id=booking_id).count() == 0

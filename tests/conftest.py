import itertools
from datetime import date, timedelta
from decimal import Decimal

import pytest
from flask import g

from tripseller import create_app
from tripseller.extensions import db
from tripseller.models import Booking, Customer, Trip, TripSchedule, UserProfile
from tripseller.models.enums import CoinSourceType
from tripseller.services import CoinService

_ids = itertools.count(1)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(role="seller", status="approved", **kwargs):
        n = next(_ids)
        user = UserProfile(
            full_name=kwargs.pop("full_name", f"{role.title()} {n}"),
            email=kwargs.pop("email", f"{role}{n}@example.com"),
            role=role,
            status=status,
            api_token=kwargs.pop("api_token", f"token-{role}-{n}"),
            **kwargs,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", status="approved")


@pytest.fixture
def seller(make_user):
    return make_user(role="seller", status="approved")


@pytest.fixture
def make_trip(app):
    def _make(price="10000", commission_type="percentage", commission_value="10", seats=20):
        trip = Trip(
            title=f"Trip {next(_ids)}",
            price_per_person=Decimal(price),
            commission_type=commission_type,
            commission_value=Decimal(commission_value),
            total_seats=seats,
        )
        db.session.add(trip)
        db.session.flush()
        departure = date.today() + timedelta(days=30)
        schedule = TripSchedule(
            trip_id=trip.id,
            registration_deadline=departure - timedelta(days=7),
            departure_date=departure,
            return_date=departure + timedelta(days=5),
            available_seats=seats,
        )
        db.session.add(schedule)
        db.session.commit()
        return trip, schedule

    return _make


@pytest.fixture
def make_booking(make_trip):
    """Insert a booking directly, without the commission rows BookingService would create."""

    def _make(seller=None, schedule=None, commission_amount="1000", payment_status="pending"):
        if schedule is None:
            _trip, schedule = make_trip()
        customer = Customer(full_name="Asha Traveller", email=f"asha{next(_ids)}@example.com")
        db.session.add(customer)
        db.session.flush()
        booking = Booking(
            customer_id=customer.id,
            trip_schedule_id=schedule.id,
            seller_id=seller.id if seller else None,
            status="approved",
            payment_status=payment_status,
            total_amount=schedule.trip.price_per_person,
            commission_amount=Decimal(commission_amount) if commission_amount is not None else None,
        )
        db.session.add(booking)
        db.session.commit()
        return booking

    return _make


@pytest.fixture
def fund_wallet(app):
    def _fund(seller, amount):
        entry = CoinService.award(seller.id, amount, source_type=CoinSourceType.ADMIN, description="Opening balance")
        db.session.commit()
        return entry

    return _fund


@pytest.fixture
def api(client):
    """Issue JSON requests as a given user.

    The test holds the app context open, so Flask-Login's cached user on ``g``
    must be dropped before each request.
    """

    def _call(method, url, user=None, json=None):
        g.pop("_login_user", None)
        headers = {"Authorization": f"Bearer {user.api_token}"} if user else {}
        return client.open(url, method=method, json=json, headers=headers)

    return _call

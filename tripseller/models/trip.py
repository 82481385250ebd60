from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class Trip(TimestampMixin, db.Model):
    __tablename__ = "trips"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    title = db.Column(db.String(200), nullable=False)
    price_per_person = db.Column(Money, nullable=False)
    commission_type = db.Column(db.String(16), nullable=False, default="percentage")
    commission_value = db.Column(Money, nullable=False, default=0)
    total_seats = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    schedules = db.relationship("TripSchedule", back_populates="trip", lazy="dynamic", cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint("price_per_person > 0", name="ck_trip_price_positive"),
        db.CheckConstraint("commission_type IN ('percentage', 'fixed')", name="ck_trip_commission_type"),
        db.CheckConstraint("commission_value >= 0", name="ck_trip_commission_value_non_negative"),
        db.CheckConstraint(
            "commission_type != 'percentage' OR commission_value <= 100",
            name="ck_trip_commission_percentage_range",
        ),
    )


class TripSchedule(TimestampMixin, db.Model):
    __tablename__ = "trip_schedules"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    trip_id = db.Column(PKType, db.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    registration_deadline = db.Column(db.Date, nullable=False)
    departure_date = db.Column(db.Date, nullable=False, index=True)
    return_date = db.Column(db.Date, nullable=False)
    available_seats = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    trip = db.relationship("Trip", back_populates="schedules")
    bookings = db.relationship("Booking", back_populates="trip_schedule", lazy="dynamic")

    __table_args__ = (
        db.CheckConstraint("registration_deadline < departure_date", name="ck_schedule_deadline_before_departure"),
        db.CheckConstraint("departure_date < return_date", name="ck_schedule_departure_before_return"),
        db.CheckConstraint("available_seats >= 0", name="ck_schedule_seats_non_negative"),
    )

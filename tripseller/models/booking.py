from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class Booking(TimestampMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    customer_id = db.Column(PKType, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    trip_schedule_id = db.Column(
        PKType, db.ForeignKey("trip_schedules.id", ondelete="SET NULL"), nullable=True, index=True
    )
    seller_id = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    total_amount = db.Column(Money, nullable=False)
    # NULL only on legacy rows created before commissions were precomputed.
    commission_amount = db.Column(Money, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    booking_date = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    partial_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", back_populates="bookings")
    trip_schedule = db.relationship("TripSchedule", back_populates="bookings")
    seller = db.relationship("UserProfile", back_populates="seller_bookings", foreign_keys=[seller_id])
    commission_payments = db.relationship(
        "CommissionPayment",
        back_populates="booking",
        lazy="dynamic",
        order_by="CommissionPayment.created_at",
    )

    __table_args__ = (
        db.Index("ix_bookings_seller_payment_status", "seller_id", "payment_status"),
        db.Index("ix_bookings_schedule_status", "trip_schedule_id", "status"),
        db.CheckConstraint("total_amount >= 0", name="ck_booking_total_non_negative"),
        db.CheckConstraint(
            "commission_amount IS NULL OR commission_amount >= 0", name="ck_booking_commission_non_negative"
        ),
    )

    @property
    def trip(self):
        return self.trip_schedule.trip if self.trip_schedule else None

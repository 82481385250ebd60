from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class CommissionPayment(TimestampMixin, db.Model):
    __tablename__ = "commission_payments"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    payment_type = db.Column(db.String(32), nullable=False)
    amount = db.Column(Money, nullable=False)
    percentage = db.Column(db.Numeric(5, 2), nullable=False, default=50)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    booking = db.relationship("Booking", back_populates="commission_payments")
    seller = db.relationship("UserProfile", back_populates="commission_payments")

    __table_args__ = (
        # Authoritative guard against duplicate halves under concurrent requests.
        db.UniqueConstraint("booking_id", "payment_type", name="uq_commission_payment_booking_type"),
        db.CheckConstraint("amount >= 0", name="ck_commission_payment_amount_non_negative"),
        db.CheckConstraint(
            "payment_type IN ('partial_commission', 'final_commission')", name="ck_commission_payment_type"
        ),
        db.CheckConstraint("status IN ('pending', 'paid', 'cancelled')", name="ck_commission_payment_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "seller_id": self.seller_id,
            "payment_type": self.payment_type,
            "amount": str(self.amount),
            "percentage": str(self.percentage),
            "status": self.status,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }

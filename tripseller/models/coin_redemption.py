from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class CoinRedemption(TimestampMixin, db.Model):
    __tablename__ = "coin_redemptions"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    seller_id = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    coin_amount = db.Column(Money, nullable=False)
    cash_amount = db.Column(Money, nullable=False)
    conversion_rate = db.Column(db.Numeric(10, 4), nullable=False, default=1)
    bank_account = db.Column(db.String(120), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.CheckConstraint("coin_amount > 0", name="ck_coin_redemption_amount_positive"),
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'paid')", name="ck_coin_redemption_status"
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "coin_amount": str(self.coin_amount),
            "cash_amount": str(self.cash_amount),
            "conversion_rate": str(self.conversion_rate),
            "status": self.status,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approved_by": self.approved_by,
            "rejection_reason": self.rejection_reason,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }

from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class SellerCoins(TimestampMixin, db.Model):
    __tablename__ = "seller_coins"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    seller_id = db.Column(
        PKType, db.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    redeemable_balance = db.Column(Money, nullable=False, default=0)
    total_earned = db.Column(Money, nullable=False, default=0)
    total_redeemed = db.Column(Money, nullable=False, default=0)

    seller = db.relationship("UserProfile", back_populates="coins")

    __table_args__ = (
        db.CheckConstraint("redeemable_balance >= 0", name="ck_seller_coins_balance_non_negative"),
    )

from flask_login import UserMixin

from tripseller.extensions import db
from tripseller.models.base import PKType, TimestampMixin


class UserProfile(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "user_profiles"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(24), nullable=False, index=True)
    status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    referral_code = db.Column(db.String(32), nullable=True, unique=True)
    # Issued by the external identity provider; only resolved here, never minted.
    api_token = db.Column(db.String(128), nullable=True, unique=True, index=True)
    is_active_user = db.Column(db.Boolean, nullable=False, default=True)

    seller_bookings = db.relationship(
        "Booking", back_populates="seller", lazy="dynamic", foreign_keys="Booking.seller_id"
    )
    commission_payments = db.relationship("CommissionPayment", back_populates="seller", lazy="dynamic")
    coins = db.relationship("SellerCoins", back_populates="seller", uselist=False)
    notifications = db.relationship("Notification", back_populates="user", lazy="dynamic")

    @property
    def is_active(self):
        return self.is_active_user

    @property
    def is_approved_seller(self):
        return self.role == "seller" and self.status == "approved"

from tripseller.extensions import db
from tripseller.models.base import PKType, TimestampMixin


class Customer(TimestampMixin, db.Model):
    __tablename__ = "customers"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    full_name = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)
    referred_by_seller_id = db.Column(
        PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    bookings = db.relationship("Booking", back_populates="customer", lazy="dynamic")

from tripseller.extensions import db
from tripseller.models.base import PKType, TimestampMixin


class Notification(TimestampMixin, db.Model):
    __tablename__ = "notifications"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    user_id = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    # "commission", "coins" or "general"; lets the seller dashboard group alerts.
    category = db.Column(db.String(32), nullable=False, default="general", index=True)
    title = db.Column(db.String(180), nullable=False)
    message = db.Column(db.Text, nullable=False)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    user = db.relationship("UserProfile", back_populates="notifications")

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "message": self.message,
            "booking_id": self.booking_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }

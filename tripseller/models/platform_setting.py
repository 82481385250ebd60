from decimal import Decimal, InvalidOperation

from tripseller.extensions import db
from tripseller.models.base import PKType, TimestampMixin


class PlatformSetting(TimestampMixin, db.Model):
    """Admin-editable knobs for the coin economy, keyed by name."""

    __tablename__ = "platform_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    updated_by = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)

    def as_decimal(self):
        """Parsed value, or None when the stored text is not a number."""
        try:
            parsed = Decimal(self.value.strip())
        except (InvalidOperation, AttributeError):
            return None
        return parsed if parsed.is_finite() else None

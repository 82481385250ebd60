from flask import current_app

from tripseller.extensions import db
from tripseller.models import Notification


class NotificationService:
    @staticmethod
    def push(user_id, title, message, category="general", booking_id=None):
        notification = Notification(
            user_id=user_id, title=title, message=message, category=category, booking_id=booking_id
        )
        db.session.add(notification)
        db.session.flush()
        return notification

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    @staticmethod
    def latest_for_user(user_id, limit=10):
        return (
            Notification.query.filter_by(user_id=user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_all_read(user_id):
        updated = Notification.query.filter_by(user_id=user_id, is_read=False).update({"is_read": True})
        db.session.commit()
        return updated

    @staticmethod
    def run_secondary(label, func, warnings):
        """Run an auxiliary effect in a savepoint so its failure cannot undo the primary write."""
        try:
            with db.session.begin_nested():
                func()
        except Exception as exc:
            current_app.logger.warning("Secondary effect '%s' failed: %s", label, exc)
            warnings.append(f"{label} failed")
            return False
        return True

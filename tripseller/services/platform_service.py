from decimal import Decimal

from flask import current_app

from tripseller.extensions import db
from tripseller.models import PlatformSetting

COIN_CONVERSION_RATE = "coin_conversion_rate"
COINS_PER_COMPLETED_BOOKING = "coins_per_completed_booking"


class PlatformService:
    @staticmethod
    def get_setting(key, default=None):
        setting = db.session.get(PlatformSetting, key)
        if not setting:
            return default
        return setting.value

    @staticmethod
    def get_decimal(key, default):
        setting = db.session.get(PlatformSetting, key)
        if not setting:
            return Decimal(str(default))
        parsed = setting.as_decimal()
        if parsed is None:
            current_app.logger.warning("Platform setting %s has non-numeric value %r", key, setting.value)
            return Decimal(str(default))
        return parsed

    @staticmethod
    def set_setting(key, value, actor=None, description=None):
        setting = db.session.get(PlatformSetting, key)
        if setting:
            setting.value = str(value)
        else:
            setting = PlatformSetting(key=key, value=str(value))
            db.session.add(setting)
        if description:
            setting.description = description
        setting.updated_by = getattr(actor, "id", None)
        db.session.commit()
        current_app.logger.info("Platform setting %s set to %s by %s", key, value, setting.updated_by)
        return setting

    @staticmethod
    def coin_conversion_rate():
        return PlatformService.get_decimal(COIN_CONVERSION_RATE, current_app.config["DEFAULT_COIN_CONVERSION_RATE"])

    @staticmethod
    def coins_per_completed_booking():
        return PlatformService.get_decimal(
            COINS_PER_COMPLETED_BOOKING, current_app.config["DEFAULT_COINS_PER_COMPLETED_BOOKING"]
        )

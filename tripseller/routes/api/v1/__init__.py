from flask import Blueprint

from tripseller.routes.api.v1.bookings import api_booking_bp
from tripseller.routes.api.v1.coins import api_coin_bp, api_redemption_bp
from tripseller.routes.api.v1.commission_payments import api_commission_bp
from tripseller.routes.api.v1.notifications import api_notification_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_booking_bp, url_prefix="/bookings")
api_v1_bp.register_blueprint(api_commission_bp, url_prefix="/commission-payments")
api_v1_bp.register_blueprint(api_coin_bp, url_prefix="/coins")
api_v1_bp.register_blueprint(api_redemption_bp, url_prefix="/coin-redemptions")
api_v1_bp.register_blueprint(api_notification_bp, url_prefix="/notifications")

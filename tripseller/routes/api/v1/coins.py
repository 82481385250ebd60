from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from tripseller.decorators import approved_seller_required, role_required
from tripseller.extensions import limiter
from tripseller.models.enums import UserRole
from tripseller.services import CoinService

api_coin_bp = Blueprint("api_coin", __name__)
api_redemption_bp = Blueprint("api_redemption", __name__)


@api_coin_bp.get("/me")
@login_required
@approved_seller_required
def my_coins():
    balance = CoinService.balance(current_user.id)
    return jsonify(
        {
            **{key: str(value) for key, value in balance.items()},
            "transactions": [entry.to_dict() for entry in CoinService.transactions(current_user.id, limit=20)],
        }
    )


@api_coin_bp.post("/redeem")
@limiter.limit("10 per minute")
@login_required
@approved_seller_required
def redeem_coins():
    payload = request.get_json(silent=True) or {}
    redemption = CoinService.request_redemption(
        current_user.id,
        payload.get("coin_amount"),
        payload.get("bank_account"),
    )
    return jsonify(redemption.to_dict()), 201


@api_coin_bp.post("/adjustments")
@login_required
@role_required(UserRole.ADMIN)
def adjust_coins():
    payload = request.get_json(silent=True) or {}
    entry = CoinService.adjust(
        payload.get("seller_id"),
        payload.get("amount"),
        payload.get("description"),
        current_user,
        reason=payload.get("reason"),
    )
    return jsonify(entry.to_dict()), 201


@api_redemption_bp.patch("/<int:redemption_id>")
@login_required
@role_required(UserRole.ADMIN)
def update_redemption(redemption_id):
    payload = request.get_json(silent=True) or {}
    result = CoinService.update_redemption(
        redemption_id,
        payload.get("status"),
        current_user,
        rejection_reason=payload.get("rejection_reason"),
        notes=payload.get("notes"),
    )
    return jsonify(result.to_dict())

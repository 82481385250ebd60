from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from tripseller.decorators import approved_seller_required, role_required
from tripseller.models.enums import UserRole
from tripseller.services import BookingService, CommissionLedger

api_commission_bp = Blueprint("api_commission", __name__)


@api_commission_bp.get("/me")
@login_required
@approved_seller_required
def my_commission():
    summary = CommissionLedger.seller_summary(current_user.id)
    return jsonify({key: str(value) if key != "bookings_count" else value for key, value in summary.items()})


@api_commission_bp.get("/<int:booking_id>")
@login_required
@role_required(UserRole.ADMIN)
def list_commission_payments(booking_id):
    booking = BookingService.get_booking(booking_id)
    return jsonify(
        {
            "booking_id": booking.id,
            "commission_amount": str(booking.commission_amount) if booking.commission_amount is not None else None,
            "commission_paid": str(CommissionLedger.sum_paid(booking.id)),
            "items": [row.to_dict() for row in CommissionLedger.list_for_booking(booking.id)],
        }
    )


@api_commission_bp.patch("/<int:booking_id>")
@login_required
@role_required(UserRole.ADMIN)
def mark_commission_paid(booking_id):
    payload = request.get_json(silent=True) or {}
    payment_type = payload.get("paymentType") or payload.get("payment_type")
    row = CommissionLedger.mark_paid_with_backfill(booking_id, payment_type)
    return jsonify(row.to_dict())


@api_commission_bp.post("/backfill")
@login_required
@role_required(UserRole.ADMIN)
def backfill_commission_payments():
    return jsonify(CommissionLedger.backfill_missing())

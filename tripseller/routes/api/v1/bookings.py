from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from tripseller.decorators import role_required
from tripseller.errors import InvalidInput
from tripseller.models.enums import UserRole
from tripseller.services import BookingService, PaymentStatusService

api_booking_bp = Blueprint("api_booking", __name__)


@api_booking_bp.post("")
@login_required
@role_required(UserRole.ADMIN)
def create_booking():
    payload = request.get_json(silent=True) or {}
    booking = BookingService.create_booking(
        schedule_id=payload.get("trip_schedule_id"),
        customer=payload.get("customer"),
        seller_id=payload.get("seller_id"),
        notes=payload.get("notes"),
        actor=current_user,
    )
    return jsonify(BookingService.serialize(booking)), 201


@api_booking_bp.get("/<int:booking_id>")
@login_required
@role_required(UserRole.ADMIN)
def get_booking(booking_id):
    booking = BookingService.get_booking(booking_id)
    return jsonify(BookingService.serialize(booking))


@api_booking_bp.delete("/<int:booking_id>")
@login_required
@role_required(UserRole.ADMIN)
def delete_booking(booking_id):
    removed = BookingService.delete_booking(booking_id)
    return jsonify({"ok": True, "commission_payments_removed": removed})


@api_booking_bp.patch("/<int:booking_id>/status")
@login_required
@role_required(UserRole.ADMIN)
def update_status(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = BookingService.update_status(booking_id, payload.get("status"), current_user)
    return jsonify({"id": booking.id, "status": booking.status})


@api_booking_bp.patch("/<int:booking_id>/seller")
@login_required
@role_required(UserRole.ADMIN)
def assign_seller(booking_id):
    payload = request.get_json(silent=True) or {}
    if "seller_id" not in payload:
        raise InvalidInput("seller_id is required (use null to remove the seller).")
    booking = BookingService.assign_seller(booking_id, payload["seller_id"])
    return jsonify(BookingService.serialize(booking))


@api_booking_bp.post("/<int:booking_id>/payment-status")
@login_required
@role_required(UserRole.ADMIN)
def update_payment_status(booking_id):
    payload = request.get_json(silent=True) or {}
    result = PaymentStatusService.transition(booking_id, payload.get("status"), actor=current_user)
    return jsonify(result.to_dict())

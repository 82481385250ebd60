from flask import jsonify
from sqlalchemy.exc import IntegrityError

from tripseller.extensions import db


class AppError(Exception):
    status_code = 400
    code = "app_error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_input"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class PaymentNotFound(NotFound):
    code = "payment_not_found"


class NoSellerAttached(AppError):
    status_code = 400
    code = "no_seller_attached"


class InsufficientBalance(AppError):
    status_code = 400
    code = "insufficient_balance"


class InvalidState(AppError):
    status_code = 409
    code = "invalid_state"


class AlreadyExists(AppError):
    """A concurrent writer already created the row. Callers treat this as success."""

    status_code = 409
    code = "already_exists"


class PartialFailure(AppError):
    """A multi-step ledger write stopped half way and needs manual reconciliation."""

    status_code = 500
    code = "partial_failure"


def _error_response(message, status_code, code):
    return jsonify({"error": message, "code": code}), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        db.session.rollback()
        if isinstance(err, PartialFailure):
            app.logger.error("Partial failure: %s", err.message)
        return _error_response(err.message, err.status_code, err.code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        db.session.rollback()
        app.logger.warning("Database integrity error")
        return _error_response("Conflict. Resource already exists.", 409, AlreadyExists.code)

    @app.errorhandler(400)
    def bad_request(_err):
        return _error_response("Bad request", 400, InvalidInput.code)

    @app.errorhandler(401)
    def unauthorized(_err):
        return _error_response("Unauthorized", 401, "unauthorized")

    @app.errorhandler(403)
    def forbidden(_err):
        return _error_response("Forbidden", 403, Forbidden.code)

    @app.errorhandler(404)
    def not_found(_err):
        return _error_response("Not found", 404, NotFound.code)

    @app.errorhandler(429)
    def too_many_requests(_err):
        return _error_response("Too many requests", 429, "rate_limited")

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return _error_response("Internal server error", 500, "server_error")

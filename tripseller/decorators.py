from functools import wraps

from flask import abort, current_app, request
from flask_login import current_user

from tripseller.models.enums import SellerStatus, UserRole


def _deny(reason):
    current_app.logger.info(
        "Denied %s %s for user %s: %s", request.method, request.path, current_user.id, reason
    )
    abort(403)


def role_required(*roles):
    allowed = {str(role) for role in roles}

    def wrapper(func):
        @wraps(func)
        def inner(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if current_user.role not in allowed:
                _deny(f"role {current_user.role}")
            return func(*args, **kwargs)

        return inner

    return wrapper


def approved_seller_required(func):
    """Seller endpoints are closed to sellers still pending review or suspended."""

    @wraps(func)
    @role_required(UserRole.SELLER)
    def inner(*args, **kwargs):
        if current_user.status != SellerStatus.APPROVED.value:
            _deny(f"seller status {current_user.status}")
        return func(*args, **kwargs)

    return inner

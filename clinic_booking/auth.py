"""Bearer-token authentication on top of Flask-Login."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import current_app, jsonify, request
from flask_login import LoginManager, current_user
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from clinic_booking.models import User, UserRole
from clinic_booking.services.audit import audit_denied
from clinic_booking.services.database import get_session

TOKEN_SALT = "clinic-booking-token"

login_manager = LoginManager()


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    return _serializer().dumps({"id": user.id, "role": user.role.value})


def load_token(token: str) -> dict[str, Any] | None:
    """Decode a token, returning None when it is malformed or expired."""

    try:
        data = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except SignatureExpired:
        current_app.logger.info("Rejected expired token")
        return None
    except BadSignature:
        current_app.logger.info("Rejected token with bad signature")
        return None
    if not isinstance(data, dict) or "id" not in data:
        return None
    return data


def _token_from_request() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.headers.get("x-auth-token") or None


@login_manager.user_loader
def load_user(user_id: str) -> User | None:
    return get_session().get(User, user_id)


@login_manager.request_loader
def load_user_from_request(req) -> User | None:
    token = _token_from_request()
    if not token:
        return None
    data = load_token(token)
    if data is None:
        return None
    user = get_session().get(User, data["id"])
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "message": "Authentication required"}), 401


def requires_role(*roles: UserRole) -> Callable:
    """Require an authenticated principal, optionally holding one of `roles`."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if roles and not current_user.has_role(*roles):
                audit_denied(request.endpoint or "unknown", reason=f"role {current_user.role.value}")
                return jsonify({"success": False, "message": "Access denied"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator

"""Authentication blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user

from clinic_booking.auth import issue_token, requires_role
from clinic_booking.extensions import limiter
from clinic_booking.forms.auth import LoginForm, RegisterForm
from clinic_booking.models import UserRole
from clinic_booking.services.accounts import authenticate, register_patient, serialize_user
from clinic_booking.services.audit import write_event
from clinic_booking.services.database import get_session

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _login_rate_key() -> str:
    body = request.get_json(silent=True) or {}
    email = str(body.get("email", "")).strip().lower()
    return f"{request.remote_addr}:{email}"


def _principal(user) -> dict[str, object]:
    data = serialize_user(user)
    if user.has_role(UserRole.DOCTOR):
        data["doctorId"] = user.id
    elif user.has_role(UserRole.PATIENT):
        data["patientId"] = user.id
    return data


@bp.route("/register", methods=["POST"], endpoint="register")
def register():
    form = RegisterForm().validated()
    user = register_patient(
        get_session(),
        email=form.email.data,
        password=form.password.data,
        first_name=form.firstName.data,
        last_name=form.lastName.data,
        phone=form.phone.data,
        address=form.address.data,
    )
    write_event(user.id, "auth.register", entity="user", entity_id=user.id)
    return (
        jsonify(
            {
                "success": True,
                "message": "Patient registered successfully",
                "token": issue_token(user),
                "user": _principal(user),
            }
        ),
        201,
    )


@bp.route("/login", methods=["POST"], endpoint="login")
@limiter.limit("5 per 15 minutes", key_func=_login_rate_key, methods=["POST"])
def login():
    form = LoginForm().validated()
    user = authenticate(get_session(), form.email.data, form.password.data)
    if user is None:
        write_event(None, "auth.login", result="failed", meta={"email": form.email.data})
        return jsonify({"success": False, "message": "Invalid credentials"}), 401
    write_event(user.id, "auth.login", entity="user", entity_id=user.id)
    return jsonify({"success": True, "token": issue_token(user), "user": _principal(user)})


@bp.route("/me", methods=["GET"], endpoint="me")
@requires_role()
def me():
    return jsonify({"success": True, "user": _principal(current_user)})

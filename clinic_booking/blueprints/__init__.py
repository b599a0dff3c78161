"""Blueprint registration."""

from __future__ import annotations

from flask import Flask

from clinic_booking.extensions import csrf

from .appointments.routes import bp as appointments_bp
from .auth.routes import bp as auth_bp
from .doctors.routes import bp as doctors_bp
from .time_slots.routes import bp as time_slots_bp

API_PREFIX = "/api"
BLUEPRINTS = (auth_bp, doctors_bp, time_slots_bp, appointments_bp)


def register_blueprints(app: Flask) -> None:
    """Serve every blueprint at the root and again under ``/api``."""

    for bp in BLUEPRINTS:
        # Bearer-token endpoints.
        csrf.exempt(bp)
        app.register_blueprint(bp)
        app.register_blueprint(
            bp,
            url_prefix=f"{API_PREFIX}{bp.url_prefix or ''}",
            name=f"api_{bp.name}",
        )

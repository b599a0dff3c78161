"""Clinic booking package exposing the Flask application factory."""

from __future__ import annotations

import atexit
import os
from pathlib import Path

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .auth import login_manager
from .blueprints import register_blueprints
from .cli import register_cli
from .extensions import init_extensions
from .services.audit import audit_rate_limit
from .services.auto_migrate import auto_upgrade
from .services.bootstrap import ensure_schema
from .services.errors import BookingError, record_exception

APP_HOST = "127.0.0.1"
APP_PORT = 8080

DEFAULT_TOKEN_MAX_AGE = 60 * 60 * 24
DEFAULT_BOOKING_RATE_LIMIT = "30 per minute"


def _data_root(base_dir: Path, override: Path | None = None) -> Path:
    root = override if override else base_dir / "data"
    root.mkdir(parents=True, exist_ok=True)
    (root / "logs").mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(BookingError)
    def handle_booking_error(exc: BookingError):
        return jsonify({"success": False, "message": exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        if exc.code == 429:
            audit_rate_limit(request.endpoint or request.path)
            return jsonify({"success": False, "message": "Too many requests"}), 429
        return jsonify({"success": False, "message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        record_exception(request.endpoint or request.path, exc)
        return jsonify({"success": False, "message": "Internal server error"}), 500


def create_app() -> Flask:
    repo_root = Path(__file__).resolve().parent.parent
    db_override = os.getenv("CLINIC_DB_PATH")
    data_override = os.getenv("CLINIC_DATA_ROOT")
    if data_override:
        override_root = Path(data_override)
    elif db_override:
        override_root = Path(db_override).parent
    else:
        override_root = None
    data_root = _data_root(repo_root, override_root)

    app = Flask(__name__)
    app.json.sort_keys = False

    secret_key = os.getenv("CLINIC_SECRET_KEY")
    if not secret_key:
        # Tokens issued with a random key do not survive a restart.
        secret_key = os.urandom(32)

    database_url = os.getenv("CLINIC_DATABASE_URL")
    if database_url:
        engine_options: dict = {"pool_pre_ping": True}
    else:
        db_path = Path(db_override) if db_override else data_root / "app.db"
        db_path.parent.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{db_path}"
        engine_options = {"connect_args": {"check_same_thread": False}}

    app.config.update(
        SECRET_KEY=secret_key,
        SQLALCHEMY_DATABASE_URI=database_url,
        SQLALCHEMY_ENGINE_OPTIONS=engine_options,
        RATELIMIT_ENABLED=_env_flag("RATELIMIT_ENABLED"),
        RATELIMIT_STORAGE_URI=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        RATELIMIT_HEADERS_ENABLED=True,
        BOOKING_RATE_LIMIT=os.getenv("CLINIC_BOOKING_RATE_LIMIT", DEFAULT_BOOKING_RATE_LIMIT),
        TOKEN_MAX_AGE=int(os.getenv("CLINIC_TOKEN_MAX_AGE", str(DEFAULT_TOKEN_MAX_AGE))),
        DATA_ROOT=str(data_root),
    )

    database = init_extensions(app)
    login_manager.init_app(app)
    register_blueprints(app)
    _register_error_handlers(app)
    auto_upgrade(app)
    created = ensure_schema(database)
    if created:
        app.logger.info("Created missing tables: %s", ", ".join(created))
    register_cli(app)
    atexit.register(database.close)

    return app


__all__ = ["create_app", "APP_HOST", "APP_PORT"]

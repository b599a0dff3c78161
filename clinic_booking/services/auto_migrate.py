"""Automatically run Alembic migrations when the app starts."""

from __future__ import annotations

import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from flask import Flask


def alembic_config(database_uri: str) -> Config | None:
    """Build an Alembic config for the repo's migrations, or None if not shipped."""

    repo_root = Path(__file__).resolve().parents[2]
    alembic_ini = repo_root / "alembic.ini"
    migrations_dir = repo_root / "migrations"
    if not alembic_ini.exists() or not migrations_dir.exists():
        return None

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(migrations_dir))
    cfg.set_main_option("sqlalchemy.url", database_uri.replace("%", "%%"))
    cfg.attributes["configure_logger"] = False
    return cfg


def auto_upgrade(app: Flask) -> bool:
    """Run `alembic upgrade head` if enabled; return True when it ran."""

    if os.getenv("CLINIC_AUTO_MIGRATE", "1") != "1":
        return False

    cfg = alembic_config(app.config["SQLALCHEMY_DATABASE_URI"])
    if cfg is None:
        app.logger.info("No migrations shipped; relying on ensure_schema")
        return False

    try:
        with app.extensions["db"].engine.begin() as connection:
            cfg.attributes["connection"] = connection
            command.upgrade(cfg, "head")
    except Exception as exc:  # pragma: no cover - ensure_schema still runs afterwards
        app.logger.warning("Auto migration skipped: %s", exc)
        return False
    app.logger.info("Database migrated to head")
    return True

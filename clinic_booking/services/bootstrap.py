"""Bootstrap helper to ensure the booking tables exist for first-time runs."""

from __future__ import annotations

from sqlalchemy import inspect

from clinic_booking.extensions import Database
from clinic_booking.models import Base


def ensure_schema(database: Database) -> list[str]:
    """Create any table missing from the database; return the names created."""

    existing = set(inspect(database.engine).get_table_names())
    missing = [table for name, table in Base.metadata.tables.items() if name not in existing]
    if missing:
        Base.metadata.create_all(database.engine, tables=missing)
    return [table.name for table in missing]

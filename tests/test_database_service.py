import pytest
from sqlalchemy import inspect, select, text

from clinic_booking.models import User, UserRole
from clinic_booking.services.bootstrap import ensure_schema
from clinic_booking.services.database import get_database, get_session, unit_of_work


def test_sqlite_pragmas_active(app):
    with app.app_context():
        session = get_session()
        mode = session.execute(text("PRAGMA journal_mode")).scalar()
        timeout = session.execute(text("PRAGMA busy_timeout")).scalar()
        foreign = session.execute(text("PRAGMA foreign_keys")).scalar()
    assert mode.lower() == "wal"
    assert timeout == 5000
    assert foreign == 1


def test_unit_of_work_rolls_back_on_error(app):
    with app.app_context():
        session = get_session()
        with pytest.raises(RuntimeError):
            with unit_of_work(session):
                session.add(
                    User(
                        id="u-1",
                        email="ghost@example.com",
                        password_hash="x",
                        first_name="G",
                        last_name="H",
                        role=UserRole.PATIENT,
                    )
                )
                session.flush()
                raise RuntimeError("boom")
        assert session.scalars(select(User).where(User.id == "u-1")).first() is None


def test_ensure_schema_recreates_missing_table(app):
    with app.app_context():
        database = get_database()
        assert ensure_schema(database) == []
        with database.engine.begin() as conn:
            conn.execute(text("DROP TABLE audit_log"))
        assert ensure_schema(database) == ["audit_log"]
        assert "audit_log" in inspect(database.engine).get_table_names()


def test_migrations_created_partial_unique_index(app):
    with app.app_context():
        indexes = {index["name"] for index in inspect(get_database().engine).get_indexes("appointments")}
    assert "uq_appointments_active_slot" in indexes

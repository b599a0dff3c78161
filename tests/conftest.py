import os
import pathlib
import shutil
import sys

import pytest

root = pathlib.Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from clinic_booking import create_app
from clinic_booking.auth import issue_token
from clinic_booking.models import Specialization, User
from clinic_booking.services.accounts import create_admin, create_doctor, register_patient
from clinic_booking.services.database import get_session
from clinic_booking.services.time_slots import SlotGenerator

PASSWORD = "password123"


@pytest.fixture(scope="session")
def _template_db(tmp_path_factory):
    """Build a fully-migrated DB once per test session.

    Every function-scoped ``app`` fixture copies this file instead of
    running the Alembic migrations from scratch.
    """
    db_path = tmp_path_factory.mktemp("template") / "app.db"
    saved = {key: os.environ.get(key) for key in ("CLINIC_DB_PATH", "CLINIC_SECRET_KEY", "CLINIC_DATA_ROOT")}
    os.environ["CLINIC_DB_PATH"] = str(db_path)
    os.environ["CLINIC_SECRET_KEY"] = "test-secret"
    os.environ.pop("CLINIC_DATA_ROOT", None)
    try:
        _app = create_app()
        # Dispose the pool so the WAL is checkpointed into app.db before copying.
        _app.extensions["db"].close()
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
    return db_path


@pytest.fixture
def app(tmp_path, monkeypatch, _template_db):
    db_path = tmp_path / "app.db"
    shutil.copy2(_template_db, db_path)
    monkeypatch.setenv("CLINIC_DB_PATH", str(db_path))
    monkeypatch.setenv("CLINIC_SECRET_KEY", "test-secret")
    monkeypatch.setenv("CLINIC_AUTO_MIGRATE", "0")  # Already migrated
    monkeypatch.delenv("CLINIC_DATABASE_URL", raising=False)
    monkeypatch.delenv("CLINIC_DATA_ROOT", raising=False)
    app = create_app()
    app.config.update(TESTING=True)
    yield app
    app.extensions["db"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_doctor(app):
    counter = {"n": 0}

    def _make(first_name="Gregory", last_name="House", specialization=Specialization.THERAPIST, email=None):
        counter["n"] += 1
        email = email or f"doctor{counter['n']}@example.com"
        with app.app_context():
            doctor = create_doctor(
                get_session(),
                email=email,
                password=PASSWORD,
                first_name=first_name,
                last_name=last_name,
                specialization=specialization,
            )
            return doctor.id

    return _make


@pytest.fixture
def make_patient(app):
    counter = {"n": 0}

    def _make(first_name="Jane", last_name="Doe", email=None):
        counter["n"] += 1
        email = email or f"patient{counter['n']}@example.com"
        with app.app_context():
            user = register_patient(
                get_session(),
                email=email,
                password=PASSWORD,
                first_name=first_name,
                last_name=last_name,
                phone="+1 555 0100",
            )
            return user.id

    return _make


@pytest.fixture
def admin_id(app):
    with app.app_context():
        return create_admin(get_session(), email="admin@example.com", password=PASSWORD).id


@pytest.fixture
def auth_headers(app):
    def _headers(user_id):
        with app.app_context():
            user = get_session().get(User, user_id)
            return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers


@pytest.fixture
def make_slots(app):
    """Generate a doctor's 16 slots for a day and return their ids in start order."""

    def _make(doctor_id, day):
        with app.app_context():
            return [slot.id for slot in SlotGenerator(get_session()).generate(doctor_id, day)]

    return _make

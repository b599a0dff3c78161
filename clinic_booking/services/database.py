"""Database helpers backed by SQLAlchemy."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import current_app
from sqlalchemy.orm import Session

from clinic_booking.extensions import Database


def get_database() -> Database:
    """Return the `Database` bound to the current application."""

    return current_app.extensions["db"]


def get_session() -> Session:
    """Return the request-scoped session of the current application."""

    return get_database().session()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope for ORM usage outside a request."""

    session = get_database().session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Run a block as one transaction on `session`, all-or-nothing.

    Reads issued earlier on the same session (e.g. loading the current user)
    are committed first so the block starts a transaction of its own.
    """

    if session.in_transaction():
        session.commit()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise

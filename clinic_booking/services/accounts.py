"""Account registration, credential checks and the doctor directory."""

from __future__ import annotations

import uuid
from typing import Any

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_booking.models import Doctor, Patient, Specialization, User, UserRole
from clinic_booking.services.database import unit_of_work
from clinic_booking.services.errors import Conflict, NotFound


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(session: Session, email: str) -> User | None:
    return session.scalars(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    ).one_or_none()


def _new_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None,
    role: UserRole,
) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=_normalize_email(email),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=(phone or "").strip() or None,
        role=role,
        is_active=True,
    )
    user.set_password(password)
    return user


def register_patient(
    session: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    address: str | None = None,
) -> User:
    """Create a PATIENT account and its profile in one transaction."""

    try:
        with unit_of_work(session):
            if find_user_by_email(session, email) is not None:
                raise Conflict("User with this email already exists")
            user = _new_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                role=UserRole.PATIENT,
            )
            session.add(user)
            session.add(Patient(id=user.id, address=address or ""))
            session.flush()
    except IntegrityError as exc:
        raise Conflict("User with this email already exists") from exc
    current_app.logger.info("Registered patient %s", user.id)
    return user


def create_doctor(
    session: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    specialization: Specialization,
    phone: str | None = None,
    education: str | None = None,
    experience: str | None = None,
    description: str | None = None,
) -> Doctor:
    """Create a DOCTOR account and its profile in one transaction."""

    try:
        with unit_of_work(session):
            if find_user_by_email(session, email) is not None:
                raise Conflict("User with this email already exists")
            user = _new_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                role=UserRole.DOCTOR,
            )
            doctor = Doctor(
                id=user.id,
                user=user,
                specialization=specialization,
                education=education,
                experience=experience,
                description=description,
            )
            session.add(doctor)
            session.flush()
    except IntegrityError as exc:
        raise Conflict("User with this email already exists") from exc
    current_app.logger.info("Created doctor %s (%s)", doctor.id, specialization.value)
    return doctor


def create_admin(
    session: Session,
    *,
    email: str,
    password: str,
    first_name: str = "Clinic",
    last_name: str = "Admin",
) -> User:
    with unit_of_work(session):
        if find_user_by_email(session, email) is not None:
            raise Conflict("User with this email already exists")
        user = _new_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=None,
            role=UserRole.ADMIN,
        )
        session.add(user)
    current_app.logger.info("Created admin %s", user.id)
    return user


def authenticate(session: Session, email: str, password: str) -> User | None:
    """Return the active user matching the credentials, else None."""

    user = find_user_by_email(session, email)
    if user is None or not user.is_active or not user.check_password(password):
        return None
    return user


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "phone": user.phone,
        "role": user.role.value,
    }


# Doctor directory -----------------------------------------------------------


def list_doctors(session: Session, specialization: Specialization | None = None) -> list[Doctor]:
    stmt = select(Doctor).join(User, Doctor.id == User.id).where(User.is_active.is_(True))
    if specialization is not None:
        stmt = stmt.where(Doctor.specialization == specialization)
    stmt = stmt.order_by(User.last_name.asc(), User.first_name.asc())
    return list(session.scalars(stmt))


def get_doctor(session: Session, doctor_id: str) -> Doctor:
    doctor = session.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFound("Doctor not found")
    return doctor


def serialize_doctor(doctor: Doctor) -> dict[str, Any]:
    return {
        "id": doctor.id,
        "firstName": doctor.user.first_name,
        "lastName": doctor.user.last_name,
        "specialization": doctor.specialization.value,
        "education": doctor.education,
        "experience": doctor.experience,
        "description": doctor.description,
    }

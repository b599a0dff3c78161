"""Ownership checks shared by the API blueprints."""

from __future__ import annotations

from typing import Iterable

from flask_login import current_user

from clinic_booking.models import UserRole
from clinic_booking.services.audit import audit_denied
from clinic_booking.services.errors import Forbidden


def deny(action: str, reason: str) -> Forbidden:
    audit_denied(action, reason=reason)
    return Forbidden("Access denied")


def is_admin() -> bool:
    return current_user.has_role(UserRole.ADMIN)


def ensure_doctor_access(doctor_id: str, action: str) -> None:
    """Admins pass; doctors only for themselves."""

    if is_admin():
        return
    if current_user.has_role(UserRole.DOCTOR) and current_user.id == doctor_id:
        return
    raise deny(action, f"doctor {current_user.id} acting for {doctor_id}")


def ensure_doctor_owns(doctor_ids: Iterable[str], action: str) -> None:
    if is_admin():
        return
    foreign = {doctor_id for doctor_id in doctor_ids if doctor_id != current_user.id}
    if foreign:
        raise deny(action, "time slots of another doctor")


def ensure_patient_access(patient_id: str, action: str, *, allow_doctor: bool = False) -> None:
    if is_admin():
        return
    if allow_doctor and current_user.has_role(UserRole.DOCTOR):
        return
    if current_user.has_role(UserRole.PATIENT) and current_user.id == patient_id:
        return
    raise deny(action, f"user {current_user.id} acting for patient {patient_id}")

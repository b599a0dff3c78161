"""Appointment booking, status transitions and read-side filtering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import uuid
from typing import Any

from flask import current_app
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from clinic_booking.models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    Patient,
    SlotStatus,
    TimeSlot,
    User,
)
from clinic_booking.services.database import unit_of_work
from clinic_booking.services.errors import Conflict, NotFound, ValidationFailed
from clinic_booking.services.time_slots import SlotStore, serialize_slot


SLOT_UNAVAILABLE = "Time slot is not available"


@dataclass(frozen=True)
class AppointmentFilters:
    """Optional, conjunctive restrictions for appointment listings.

    ``start_date``/``end_date`` bound the slot start time (inclusive) and only
    apply when both are set. ``search`` matches patient or doctor first/last
    name, case-insensitively.
    """

    doctor_id: str | None = None
    patient_id: str | None = None
    status: AppointmentStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class AppointmentStore:
    """Repository for appointment rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def by_id(self, appointment_id: str, *, for_update: bool = False) -> Appointment | None:
        stmt = select(Appointment).where(Appointment.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update(of=Appointment)
        return self.session.scalars(stmt).one_or_none()

    def add(self, appointment: Appointment) -> Appointment:
        self.session.add(appointment)
        self.session.flush()
        return appointment

    def remove(self, appointment: Appointment) -> None:
        self.session.delete(appointment)
        self.session.flush()

    def list(self, filters: AppointmentFilters | None = None) -> list[Appointment]:
        filters = filters or AppointmentFilters()
        patient_user = aliased(User, name="patient_user")
        doctor_user = aliased(User, name="doctor_user")
        stmt = (
            select(Appointment)
            .join(TimeSlot, Appointment.time_slot_id == TimeSlot.id)
            .join(patient_user, Appointment.patient_id == patient_user.id)
            .join(doctor_user, Appointment.doctor_id == doctor_user.id)
        )
        if filters.doctor_id:
            stmt = stmt.where(Appointment.doctor_id == filters.doctor_id)
        if filters.patient_id:
            stmt = stmt.where(Appointment.patient_id == filters.patient_id)
        if filters.status:
            stmt = stmt.where(Appointment.status == filters.status)
        if filters.has_date_range:
            stmt = stmt.where(
                TimeSlot.start_time >= filters.start_date,
                TimeSlot.start_time <= filters.end_date,
            )
        needle = (filters.search or "").strip()
        if needle:
            stmt = stmt.where(
                or_(
                    patient_user.first_name.icontains(needle, autoescape=True),
                    patient_user.last_name.icontains(needle, autoescape=True),
                    doctor_user.first_name.icontains(needle, autoescape=True),
                    doctor_user.last_name.icontains(needle, autoescape=True),
                )
            )
        stmt = stmt.order_by(TimeSlot.start_time.asc(), Appointment.created_at.asc())
        return list(self.session.scalars(stmt))


class BookingEngine:
    """Turns an available slot into a booked appointment and manages its lifecycle."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.slots = SlotStore(session)
        self.appointments = AppointmentStore(session)

    def book(
        self,
        patient_id: str,
        doctor_id: str,
        time_slot_id: str,
        notes: str | None = None,
    ) -> Appointment:
        """Book `time_slot_id` for the patient with the doctor.

        Slot lookup, availability check, slot claim and appointment insert run
        in one transaction with the slot row locked; the claim itself is a
        conditional update so a concurrent booking that slipped past the read
        still loses with a Conflict.
        """

        try:
            with unit_of_work(self.session):
                slot = self.slots.by_id(time_slot_id, for_update=True)
                if slot is None:
                    raise NotFound("Time slot not found")
                if slot.status != SlotStatus.AVAILABLE:
                    raise Conflict(SLOT_UNAVAILABLE)
                doctor = self.session.get(Doctor, doctor_id)
                if doctor is None:
                    raise NotFound("Doctor not found")
                patient = self.session.get(Patient, patient_id)
                if patient is None:
                    raise NotFound("Patient not found")
                if slot.doctor_id != doctor.id:
                    raise ValidationFailed("Time slot does not belong to this doctor")

                claimed = self.session.execute(
                    update(TimeSlot)
                    .where(TimeSlot.id == slot.id, TimeSlot.status == SlotStatus.AVAILABLE)
                    .values(status=SlotStatus.BOOKED)
                )
                if claimed.rowcount != 1:
                    raise Conflict(SLOT_UNAVAILABLE)

                appointment = self.appointments.add(
                    Appointment(
                        id=str(uuid.uuid4()),
                        patient=patient,
                        doctor=doctor,
                        time_slot=slot,
                        status=AppointmentStatus.SCHEDULED,
                        notes=notes,
                    )
                )
        except IntegrityError as exc:
            # The partial unique index on live appointments caught a race.
            current_app.logger.warning("Booking race on slot %s: %s", time_slot_id, exc.orig)
            raise Conflict(SLOT_UNAVAILABLE) from exc
        current_app.logger.info(
            "Booked slot %s for patient %s with doctor %s (appointment %s)",
            time_slot_id,
            patient_id,
            doctor_id,
            appointment.id,
        )
        return appointment

    def _release_slot(self, slot_id: str) -> None:
        slot = self.slots.by_id(slot_id, for_update=True)
        if slot is None:
            return
        slot.status = SlotStatus.AVAILABLE

    def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        notes: str | None = None,
    ) -> Appointment:
        """Set an appointment's status; cancelling hands the slot back."""

        with unit_of_work(self.session):
            appointment = self.appointments.by_id(appointment_id, for_update=True)
            if appointment is None:
                raise NotFound("Appointment not found")
            previous = appointment.status
            if previous == AppointmentStatus.CANCELLED and status != AppointmentStatus.CANCELLED:
                raise Conflict("Cancelled appointments cannot be reopened")
            appointment.status = status
            if notes is not None:
                appointment.notes = notes
            if status == AppointmentStatus.CANCELLED and previous != AppointmentStatus.CANCELLED:
                self._release_slot(appointment.time_slot_id)
        current_app.logger.info(
            "Appointment %s moved from %s to %s", appointment_id, previous.value, status.value
        )
        return appointment

    def delete(self, appointment_id: str) -> bool:
        """Remove an appointment permanently, freeing its slot."""

        with unit_of_work(self.session):
            appointment = self.appointments.by_id(appointment_id, for_update=True)
            if appointment is None:
                raise NotFound("Appointment not found")
            # A cancelled row already gave its slot back, which may be rebooked.
            if appointment.holds_slot:
                self._release_slot(appointment.time_slot_id)
            self.appointments.remove(appointment)
        current_app.logger.info("Appointment %s deleted", appointment_id)
        return True


# Serialization -------------------------------------------------------------


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _person(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "phone": user.phone,
    }


def serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    """Full appointment payload for detail, booking and status responses."""

    slot = appointment.time_slot
    doctor = appointment.doctor
    return {
        "id": appointment.id,
        "patientId": appointment.patient_id,
        "doctorId": appointment.doctor_id,
        "timeSlotId": appointment.time_slot_id,
        "status": appointment.status.value,
        "notes": appointment.notes,
        "dateTime": _iso(slot.start_time),
        "endTime": _iso(slot.end_time),
        "createdAt": _iso(appointment.created_at),
        "updatedAt": _iso(appointment.updated_at),
        "patient": _person(appointment.patient.user),
        "doctor": {
            **_person(doctor.user),
            "specialization": doctor.specialization.value,
        },
        "timeSlot": serialize_slot(slot),
    }


def admin_row(appointment: Appointment) -> dict[str, Any]:
    patient = appointment.patient.user
    doctor = appointment.doctor
    return {
        "id": appointment.id,
        "patientName": patient.full_name,
        "doctorName": doctor.user.full_name,
        "doctorSpecialization": doctor.specialization.value,
        "dateTime": _iso(appointment.time_slot.start_time),
        "endTime": _iso(appointment.time_slot.end_time),
        "status": appointment.status.value,
        "notes": appointment.notes,
        "patientId": appointment.patient_id,
        "doctorId": appointment.doctor_id,
        "timeSlotId": appointment.time_slot_id,
        "patientContact": patient.phone,
        "patientEmail": patient.email,
    }


def doctor_row(appointment: Appointment) -> dict[str, Any]:
    patient = appointment.patient.user
    return {
        "id": appointment.id,
        "patientName": patient.full_name,
        "patientContact": patient.phone,
        "patientEmail": patient.email,
        "dateTime": _iso(appointment.time_slot.start_time),
        "endTime": _iso(appointment.time_slot.end_time),
        "status": appointment.status.value,
        "notes": appointment.notes,
        "patientId": appointment.patient_id,
        "timeSlotId": appointment.time_slot_id,
    }


def patient_row(appointment: Appointment) -> dict[str, Any]:
    doctor = appointment.doctor
    return {
        "id": appointment.id,
        "doctorName": doctor.user.full_name,
        "doctorSpecialization": doctor.specialization.value,
        "dateTime": _iso(appointment.time_slot.start_time),
        "endTime": _iso(appointment.time_slot.end_time),
        "status": appointment.status.value,
        "notes": appointment.notes,
        "doctorId": appointment.doctor_id,
        "timeSlotId": appointment.time_slot_id,
    }


class AppointmentQueries:
    """Admin, doctor and patient listings built on one filter contract."""

    def __init__(self, session: Session) -> None:
        self.store = AppointmentStore(session)

    def list(self, filters: AppointmentFilters) -> list[Appointment]:
        return self.store.list(filters)

    def for_admin(self, filters: AppointmentFilters) -> list[dict[str, Any]]:
        return [admin_row(appt) for appt in self.store.list(filters)]

    def for_doctor(self, doctor_id: str, filters: AppointmentFilters) -> list[dict[str, Any]]:
        scoped = AppointmentFilters(
            doctor_id=doctor_id,
            status=filters.status,
            start_date=filters.start_date,
            end_date=filters.end_date,
        )
        return [doctor_row(appt) for appt in self.store.list(scoped)]

    def for_patient(self, patient_id: str, filters: AppointmentFilters) -> list[dict[str, Any]]:
        scoped = AppointmentFilters(
            patient_id=patient_id,
            status=filters.status,
            start_date=filters.start_date,
            end_date=filters.end_date,
        )
        return [patient_row(appt) for appt in self.store.list(scoped)]

"""Appointment API: booking, status changes, deletion and role-scoped listings."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from clinic_booking.auth import requires_role
from clinic_booking.blueprints.guards import ensure_doctor_access, ensure_patient_access
from clinic_booking.extensions import limiter
from clinic_booking.forms.booking import AppointmentFilterForm, AppointmentStatusForm, BookingForm
from clinic_booking.models import AppointmentStatus, UserRole
from clinic_booking.services.appointments import (
    AppointmentQueries,
    AppointmentStore,
    BookingEngine,
    serialize_appointment,
)
from clinic_booking.services.audit import audit_action
from clinic_booking.services.database import get_session
from clinic_booking.services.errors import NotFound

bp = Blueprint("appointments", __name__, url_prefix="/appointments")


def _booking_limit() -> str:
    return current_app.config["BOOKING_RATE_LIMIT"]


def _filters():
    return AppointmentFilterForm(formdata=request.args).validated().filters()


def _listing(rows):
    return jsonify(rows)


@bp.route("", methods=["POST"], endpoint="create")
@limiter.limit(_booking_limit, methods=["POST"])
@requires_role(UserRole.PATIENT, UserRole.ADMIN)
def book_appointment():
    form = BookingForm().validated()
    ensure_patient_access(form.patientId.data, "appointments.create")
    appointment = BookingEngine(get_session()).book(
        patient_id=form.patientId.data,
        doctor_id=form.doctorId.data,
        time_slot_id=form.timeSlotId.data,
        notes=form.notes.data or None,
    )
    payload = serialize_appointment(appointment)
    audit_action(
        "appointments.create",
        entity="appointment",
        entity_id=appointment.id,
        meta={"time_slot_id": appointment.time_slot_id, "notes": appointment.notes},
    )
    return (
        jsonify({"success": True, "message": "Appointment booked successfully", "appointment": payload}),
        201,
    )


@bp.route("/all", methods=["GET"], endpoint="all")
@requires_role(UserRole.ADMIN)
def all_appointments():
    rows = AppointmentQueries(get_session()).for_admin(_filters())
    return _listing(rows)


@bp.route("/doctor/<doctor_id>", methods=["GET"], endpoint="doctor")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def doctor_appointments(doctor_id: str):
    ensure_doctor_access(doctor_id, "appointments.doctor")
    rows = AppointmentQueries(get_session()).for_doctor(doctor_id, _filters())
    return _listing(rows)


@bp.route("/patient/<patient_id>", methods=["GET"], endpoint="patient")
@requires_role(UserRole.PATIENT, UserRole.DOCTOR, UserRole.ADMIN)
def patient_appointments(patient_id: str):
    ensure_patient_access(patient_id, "appointments.patient", allow_doctor=True)
    rows = AppointmentQueries(get_session()).for_patient(patient_id, _filters())
    return _listing(rows)


@bp.route("/<appointment_id>", methods=["GET"], endpoint="detail")
@requires_role()
def appointment_detail(appointment_id: str):
    appointment = AppointmentStore(get_session()).by_id(appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    return jsonify({"success": True, "appointment": serialize_appointment(appointment)})


@bp.route("/<appointment_id>/status", methods=["PUT"], endpoint="status")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def update_status(appointment_id: str):
    """Change status and optionally notes.

    400 for an unknown status or when reopening a CANCELLED appointment,
    403 for another doctor's appointment, 404 for an unknown id.
    """

    form = AppointmentStatusForm().validated()
    session = get_session()
    current = AppointmentStore(session).by_id(appointment_id)
    if current is None:
        raise NotFound("Appointment not found")
    ensure_doctor_access(current.doctor_id, "appointments.status")
    appointment = BookingEngine(session).update_status(
        appointment_id,
        AppointmentStatus(form.status.data),
        notes=form.notes.data if form.notes.raw_data else None,
    )
    audit_action(
        "appointments.status",
        entity="appointment",
        entity_id=appointment_id,
        meta={"status": appointment.status.value},
    )
    return jsonify(
        {
            "success": True,
            "message": "Appointment status updated successfully",
            "appointment": serialize_appointment(appointment),
        }
    )


@bp.route("/<appointment_id>", methods=["DELETE"], endpoint="delete")
@requires_role(UserRole.ADMIN)
def delete_appointment(appointment_id: str):
    BookingEngine(get_session()).delete(appointment_id)
    audit_action("appointments.delete", entity="appointment", entity_id=appointment_id)
    return jsonify({"success": True, "message": "Appointment deleted successfully"})

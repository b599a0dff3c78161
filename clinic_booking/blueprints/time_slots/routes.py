"""Time-slot API: availability reads, generation and blocking."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from clinic_booking.auth import requires_role
from clinic_booking.blueprints.guards import ensure_doctor_access, ensure_doctor_owns
from clinic_booking.forms.booking import (
    BulkUnavailableForm,
    GenerateDaysForm,
    GenerateSlotsForm,
    SlotStatusForm,
)
from clinic_booking.models import SlotStatus, UserRole
from clinic_booking.services.audit import audit_action
from clinic_booking.services.database import get_session
from clinic_booking.services.time_slots import (
    SlotGenerator,
    SlotStore,
    parse_day,
    serialize_slot,
    slots_by_hour,
)

bp = Blueprint("time_slots", __name__, url_prefix="/time-slots")


@bp.route("/doctor/<doctor_id>", methods=["GET"], endpoint="doctor")
def doctor_slots(doctor_id: str):
    """Bare array of a doctor's slots for `?date=`, or of all upcoming slots."""

    store = SlotStore(get_session())
    raw_date = request.args.get("date")
    if raw_date:
        slots = store.by_doctor_and_date(doctor_id, parse_day(raw_date))
    else:
        slots = store.upcoming_by_doctor(doctor_id)
    return jsonify([serialize_slot(slot) for slot in slots])


@bp.route("/available/<doctor_id>", methods=["GET"], endpoint="available")
def available_slots(doctor_id: str):
    day = parse_day(request.args.get("date", ""))
    slots = SlotStore(get_session()).available_by_doctor_and_date(doctor_id, day)
    serialized = [serialize_slot(slot) for slot in slots]
    return jsonify(
        {
            "success": True,
            "date": day.isoformat(),
            "slots": serialized,
            "slotsByHour": slots_by_hour(serialized),
            "total": len(serialized),
        }
    )


@bp.route("/generate/<doctor_id>", methods=["POST"], endpoint="generate")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def generate_slots(doctor_id: str):
    form = GenerateSlotsForm().validated()
    ensure_doctor_access(doctor_id, "time_slots.generate")
    day = form.day()
    slots = SlotGenerator(get_session()).generate(doctor_id, day)
    serialized = [serialize_slot(slot) for slot in slots]
    audit_action(
        "time_slots.generate",
        entity="doctor",
        entity_id=doctor_id,
        meta={"date": day.isoformat(), "count": len(serialized)},
    )
    return (
        jsonify(
            {
                "success": True,
                "message": "Time slots generated successfully",
                "timeSlots": serialized,
            }
        ),
        201,
    )


@bp.route("/generate-days/<doctor_id>", methods=["POST"], endpoint="generate_days")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def generate_days(doctor_id: str):
    form = GenerateDaysForm().validated()
    ensure_doctor_access(doctor_id, "time_slots.generate_days")
    days = form.day_count()
    slots = SlotGenerator(get_session()).generate_for_days(doctor_id, days)
    serialized = [serialize_slot(slot) for slot in slots]
    audit_action(
        "time_slots.generate_days",
        entity="doctor",
        entity_id=doctor_id,
        meta={"days": days, "count": len(serialized)},
    )
    return (
        jsonify(
            {
                "success": True,
                "message": f"Time slots generated for {days} day(s)",
                "count": len(serialized),
                "timeSlots": serialized,
            }
        ),
        201,
    )


@bp.route("/status/<slot_id>", methods=["PUT"], endpoint="status")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def update_slot_status(slot_id: str):
    form = SlotStatusForm().validated()
    store = SlotStore(get_session())
    ensure_doctor_owns(store.doctor_ids_for([slot_id]).values(), "time_slots.status")
    slot = store.set_status(slot_id, SlotStatus(form.status.data))
    audit_action(
        "time_slots.status", entity="time_slot", entity_id=slot_id, meta={"status": slot.status.value}
    )
    return jsonify(
        {
            "success": True,
            "message": "Time slot status updated successfully",
            "timeSlot": serialize_slot(slot),
        }
    )


@bp.route("/unavailable", methods=["POST"], endpoint="unavailable")
@requires_role(UserRole.DOCTOR, UserRole.ADMIN)
def mark_unavailable():
    form = BulkUnavailableForm().validated()
    store = SlotStore(get_session())
    slot_ids = form.slotIds.data
    ensure_doctor_owns(store.doctor_ids_for(slot_ids).values(), "time_slots.unavailable")
    updated = store.mark_many_unavailable(slot_ids)
    audit_action(
        "time_slots.unavailable",
        entity="time_slot",
        meta={"requested": len(slot_ids), "updated": len(updated)},
    )
    return jsonify(
        {
            "success": True,
            "message": f"{len(updated)} time slot(s) marked as unavailable",
            "timeSlots": [serialize_slot(slot) for slot in updated],
        }
    )

"""Public doctor directory."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from clinic_booking.models import Specialization
from clinic_booking.services.accounts import get_doctor, list_doctors, serialize_doctor
from clinic_booking.services.database import get_session
from clinic_booking.services.errors import ValidationFailed

bp = Blueprint("doctors", __name__, url_prefix="/doctors")


def _specialization(raw: str | None) -> Specialization | None:
    if not raw:
        return None
    try:
        return Specialization(raw.strip().upper())
    except ValueError as exc:
        raise ValidationFailed(f"Unknown specialization: {raw}") from exc


@bp.route("", methods=["GET"], endpoint="index")
def doctors_index():
    specialization = _specialization(request.args.get("specialization"))
    doctors = [serialize_doctor(doc) for doc in list_doctors(get_session(), specialization)]
    return jsonify({"success": True, "doctors": doctors, "total": len(doctors)})


@bp.route("/specializations", methods=["GET"], endpoint="specializations")
def specializations():
    return jsonify({"success": True, "specializations": [item.value for item in Specialization]})


@bp.route("/specialization/<name>", methods=["GET"], endpoint="by_specialization")
def doctors_by_specialization(name: str):
    specialization = _specialization(name)
    doctors = [serialize_doctor(doc) for doc in list_doctors(get_session(), specialization)]
    return jsonify({"success": True, "doctors": doctors, "total": len(doctors)})


@bp.route("/<doctor_id>", methods=["GET"], endpoint="detail")
def doctor_detail(doctor_id: str):
    doctor = get_doctor(get_session(), doctor_id)
    return jsonify({"success": True, "doctor": serialize_doctor(doctor)})

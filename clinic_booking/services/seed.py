"""Demo data: a handful of doctors, one test patient and weekday slots."""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.orm import Session

from clinic_booking.models import Specialization
from clinic_booking.services.accounts import create_doctor, find_user_by_email, register_patient
from clinic_booking.services.time_slots import SlotGenerator

DEMO_PASSWORD = "password123"
DEMO_PATIENT = {
    "email": "patient@example.com",
    "first_name": "Test",
    "last_name": "Patient",
    "phone": "+7 700 000 0000",
}
DEMO_DOCTORS = (
    {
        "email": "alina.koval@example.com",
        "first_name": "Alina",
        "last_name": "Koval",
        "specialization": Specialization.THERAPIST,
        "experience": "12 years",
        "description": "Respiratory infections, chronic conditions, vaccination",
    },
    {
        "email": "daniyar.mukhamedov@example.com",
        "first_name": "Daniyar",
        "last_name": "Mukhamedov",
        "specialization": Specialization.THERAPIST,
        "experience": "8 years",
        "description": "General practice and preventive check-ups",
    },
    {
        "email": "timur.aliev@example.com",
        "first_name": "Timur",
        "last_name": "Aliev",
        "specialization": Specialization.CARDIOLOGIST,
        "experience": "15 years",
        "description": "Hypertension, arrhythmia, ECG interpretation",
    },
    {
        "email": "gulnara.suleymenova@example.com",
        "first_name": "Gulnara",
        "last_name": "Suleymenova",
        "specialization": Specialization.CARDIOLOGIST,
        "experience": "10 years",
        "description": "Heart failure and cardiac rehabilitation",
    },
)


@dataclass
class SeedReport:
    patients: int = 0
    doctors: int = 0
    slots: int = 0
    skipped: list[str] = field(default_factory=list)


def seed_demo(session: Session, *, slot_days: int = 7) -> SeedReport:
    """Create demo accounts that are missing and weekday slots for every demo doctor."""

    report = SeedReport()
    if find_user_by_email(session, DEMO_PATIENT["email"]) is None:
        register_patient(session, password=DEMO_PASSWORD, **DEMO_PATIENT)
        report.patients += 1
    else:
        report.skipped.append(DEMO_PATIENT["email"])

    generator = SlotGenerator(session)
    for data in DEMO_DOCTORS:
        existing = find_user_by_email(session, data["email"])
        if existing is None:
            doctor_id = create_doctor(session, password=DEMO_PASSWORD, **data).id
            report.doctors += 1
        else:
            doctor_id = existing.id
            report.skipped.append(data["email"])
        report.slots += len(generator.generate_weekdays(doctor_id, slot_days))

    current_app.logger.info(
        "Seeded %d patient(s), %d doctor(s), %d slot(s)", report.patients, report.doctors, report.slots
    )
    return report

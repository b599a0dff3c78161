from datetime import date, datetime

import pytest

from clinic_booking.models import SlotStatus
from clinic_booking.services.appointments import BookingEngine
from clinic_booking.services.database import get_session
from clinic_booking.services.errors import Conflict, NotFound
from clinic_booking.services.time_slots import SlotStore


def test_reads_by_day_are_ordered_and_filtered(app, make_doctor, make_slots):
    doctor_id = make_doctor()
    ids = make_slots(doctor_id, date(2024, 6, 10))
    make_slots(doctor_id, date(2024, 6, 11))
    with app.app_context():
        store = SlotStore(get_session())
        store.set_status(ids[0], SlotStatus.UNAVAILABLE)

        day = store.by_doctor_and_date(doctor_id, datetime(2024, 6, 10, 23, 59))
        assert [slot.id for slot in day] == ids
        assert [slot.start_time for slot in day] == sorted(slot.start_time for slot in day)

        available = store.available_by_doctor_and_date(doctor_id, date(2024, 6, 10))
        assert len(available) == 15
        assert ids[0] not in {slot.id for slot in available}


def test_upcoming_uses_clock(app, make_doctor, make_slots):
    doctor_id = make_doctor()
    make_slots(doctor_id, date(2024, 6, 10))
    make_slots(doctor_id, date(2024, 6, 11))
    with app.app_context():
        store = SlotStore(get_session(), clock=lambda: datetime(2024, 6, 11, 12, 0))
        upcoming = store.upcoming_by_doctor(doctor_id)
    assert len(upcoming) == 8
    assert upcoming[0].start_time == datetime(2024, 6, 11, 14, 0)


def test_set_status_round_trip(app, make_doctor, make_slots):
    doctor_id = make_doctor()
    slot_id = make_slots(doctor_id, date(2024, 6, 10))[3]
    with app.app_context():
        store = SlotStore(get_session())
        assert store.set_status(slot_id, SlotStatus.UNAVAILABLE).status == SlotStatus.UNAVAILABLE
        assert store.set_status(slot_id, SlotStatus.AVAILABLE).status == SlotStatus.AVAILABLE


def test_set_status_guards_booked(app, make_doctor, make_patient, make_slots):
    doctor_id = make_doctor()
    patient_id = make_patient()
    slot_ids = make_slots(doctor_id, date(2024, 6, 10))
    with app.app_context():
        session = get_session()
        store = SlotStore(session)
        with pytest.raises(Conflict):
            store.set_status(slot_ids[0], SlotStatus.BOOKED)

        BookingEngine(session).book(patient_id, doctor_id, slot_ids[1])
        with pytest.raises(Conflict):
            store.set_status(slot_ids[1], SlotStatus.AVAILABLE)
        assert store.by_id(slot_ids[1]).status == SlotStatus.BOOKED


def test_set_status_unknown_slot(app):
    with app.app_context():
        with pytest.raises(NotFound) as excinfo:
            SlotStore(get_session()).set_status("nope", SlotStatus.UNAVAILABLE)
    assert excinfo.value.message == "Time slot with ID nope not found"


def test_mark_many_unavailable_skips_non_available(app, make_doctor, make_patient, make_slots):
    doctor_id = make_doctor()
    patient_id = make_patient()
    available, booked, blocked = make_slots(doctor_id, date(2024, 6, 10))[:3]
    with app.app_context():
        session = get_session()
        store = SlotStore(session)
        BookingEngine(session).book(patient_id, doctor_id, booked)
        store.set_status(blocked, SlotStatus.UNAVAILABLE)

        updated = store.mark_many_unavailable([available, booked, blocked, "unknown", available])

        assert [slot.id for slot in updated] == [available]
        assert store.by_id(available).status == SlotStatus.UNAVAILABLE
        assert store.by_id(booked).status == SlotStatus.BOOKED
        assert store.by_id(blocked).status == SlotStatus.UNAVAILABLE


def test_doctor_ids_for(app, make_doctor, make_slots):
    first = make_doctor()
    second = make_doctor(first_name="Lisa", last_name="Cuddy")
    a = make_slots(first, date(2024, 6, 10))[0]
    b = make_slots(second, date(2024, 6, 10))[0]
    with app.app_context():
        mapping = SlotStore(get_session()).doctor_ids_for([a, b, "ghost"])
    assert mapping == {a: first, b: second}

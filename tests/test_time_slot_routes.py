from datetime import date

import pytest


def test_available_slots_payload(client, make_doctor, make_slots):
    doctor_id = make_doctor()
    make_slots(doctor_id, date(2024, 6, 10))
    resp = client.get(f"/time-slots/available/{doctor_id}?date=2024-06-10")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["date"] == "2024-06-10"
    assert body["total"] == 16
    first = body["slots"][0]
    assert first["formattedStartTime"] == "08:00"
    assert first["formattedEndTime"] == "08:30"
    assert first["doctorId"] == doctor_id
    assert first["status"] == "AVAILABLE"
    assert set(body["slotsByHour"]) == {"8", "9", "10", "11", "14", "15", "16", "17"}
    assert len(body["slotsByHour"]["8"]) == 2


def test_available_slots_requires_date(client, make_doctor):
    resp = client.get(f"/time-slots/available/{make_doctor()}")
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": "Date parameter is required"}


def test_available_slots_rejects_bad_date(client, make_doctor):
    resp = client.get(f"/time-slots/available/{make_doctor()}?date=tomorrow")
    assert resp.status_code == 400
    assert resp.get_json()["message"].startswith("Invalid date")


def test_doctor_slots_for_date_and_api_prefix(client, make_doctor, make_slots):
    doctor_id = make_doctor()
    make_slots(doctor_id, date(2024, 6, 10))
    root = client.get(f"/time-slots/doctor/{doctor_id}?date=2024-06-10").get_json()
    api = client.get(f"/api/time-slots/doctor/{doctor_id}?date=2024-06-10").get_json()
    assert isinstance(root, list)
    assert len(root) == 16
    assert root == api
    assert root[0]["formattedStartTime"] == "08:00"


def test_generate_requires_authentication(client, make_doctor):
    resp = client.post(f"/time-slots/generate/{make_doctor()}", json={"date": "2024-06-10"})
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_generate_rejects_patient(client, make_doctor, make_patient, auth_headers):
    patient_id = make_patient()
    resp = client.post(
        f"/time-slots/generate/{make_doctor()}",
        json={"date": "2024-06-10"},
        headers=auth_headers(patient_id),
    )
    assert resp.status_code == 403


def test_doctor_generates_own_schedule_only(client, make_doctor, auth_headers):
    own = make_doctor()
    other = make_doctor(first_name="Lisa", last_name="Cuddy")
    headers = auth_headers(own)

    created = client.post(f"/time-slots/generate/{own}", json={"date": "2024-06-10"}, headers=headers)
    assert created.status_code == 201
    assert len(created.get_json()["timeSlots"]) == 16

    again = client.post(f"/time-slots/generate/{own}", json={"date": "2024-06-10"}, headers=headers)
    assert [s["id"] for s in again.get_json()["timeSlots"]] == [s["id"] for s in created.get_json()["timeSlots"]]

    denied = client.post(f"/time-slots/generate/{other}", json={"date": "2024-06-10"}, headers=headers)
    assert denied.status_code == 403


def test_generate_missing_date(client, make_doctor, auth_headers):
    doctor_id = make_doctor()
    resp = client.post(f"/time-slots/generate/{doctor_id}", json={}, headers=auth_headers(doctor_id))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Date is required"


def test_generate_unknown_doctor_as_admin(client, admin_id, auth_headers):
    resp = client.post("/time-slots/generate/ghost", json={"date": "2024-06-10"}, headers=auth_headers(admin_id))
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "message": "Doctor not found"}


def test_generate_days_defaults_to_seven(client, make_doctor, auth_headers):
    doctor_id = make_doctor()
    resp = client.post(f"/api/time-slots/generate-days/{doctor_id}", json={}, headers=auth_headers(doctor_id))
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["count"] == 7 * 16
    assert len(body["timeSlots"]) == body["count"]


@pytest.mark.parametrize("days", [0, 91, "many"])
def test_generate_days_validation(client, make_doctor, auth_headers, days):
    doctor_id = make_doctor()
    resp = client.post(
        f"/time-slots/generate-days/{doctor_id}", json={"days": days}, headers=auth_headers(doctor_id)
    )
    assert resp.status_code == 400


def test_update_slot_status(client, make_doctor, make_slots, auth_headers):
    doctor_id = make_doctor()
    slot_id = make_slots(doctor_id, date(2024, 6, 10))[0]
    resp = client.put(
        f"/time-slots/status/{slot_id}", json={"status": "UNAVAILABLE"}, headers=auth_headers(doctor_id)
    )
    assert resp.status_code == 200
    assert resp.get_json()["timeSlot"]["status"] == "UNAVAILABLE"

    bad = client.put(f"/time-slots/status/{slot_id}", json={"status": "ASLEEP"}, headers=auth_headers(doctor_id))
    assert bad.status_code == 400

    booked = client.put(f"/time-slots/status/{slot_id}", json={"status": "BOOKED"}, headers=auth_headers(doctor_id))
    assert booked.status_code == 400


def test_update_slot_status_of_another_doctor(client, make_doctor, make_slots, auth_headers):
    owner = make_doctor()
    intruder = make_doctor(first_name="Lisa", last_name="Cuddy")
    slot_id = make_slots(owner, date(2024, 6, 10))[0]
    resp = client.put(
        f"/time-slots/status/{slot_id}", json={"status": "UNAVAILABLE"}, headers=auth_headers(intruder)
    )
    assert resp.status_code == 403


def test_update_unknown_slot_status(client, admin_id, auth_headers):
    resp = client.put("/time-slots/status/ghost", json={"status": "UNAVAILABLE"}, headers=auth_headers(admin_id))
    assert resp.status_code == 404


def test_bulk_unavailable(client, make_doctor, make_slots, auth_headers):
    doctor_id = make_doctor()
    ids = make_slots(doctor_id, date(2024, 6, 10))
    headers = auth_headers(doctor_id)
    client.put(f"/time-slots/status/{ids[1]}", json={"status": "UNAVAILABLE"}, headers=headers)

    resp = client.post("/time-slots/unavailable", json={"slotIds": [ids[0], ids[1], "ghost"]}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [slot["id"] for slot in body["timeSlots"]] == [ids[0]]
    assert body["timeSlots"][0]["status"] == "UNAVAILABLE"


def test_bulk_unavailable_validation_and_ownership(client, make_doctor, make_slots, auth_headers):
    owner = make_doctor()
    intruder = make_doctor(first_name="Lisa", last_name="Cuddy")
    ids = make_slots(owner, date(2024, 6, 10))

    empty = client.post("/time-slots/unavailable", json={"slotIds": []}, headers=auth_headers(owner))
    assert empty.status_code == 400

    denied = client.post("/time-slots/unavailable", json={"slotIds": ids[:2]}, headers=auth_headers(intruder))
    assert denied.status_code == 403

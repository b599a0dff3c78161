from clinic_booking.models import Specialization


def test_directory_lists_doctors_by_name(client, make_doctor):
    make_doctor(first_name="Lisa", last_name="Cuddy", specialization=Specialization.CARDIOLOGIST)
    make_doctor(first_name="Gregory", last_name="House")
    resp = client.get("/doctors")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["total"] == 2
    assert [doc["lastName"] for doc in body["doctors"]] == ["Cuddy", "House"]
    assert "email" not in body["doctors"][0]


def test_directory_filters_by_specialization(client, make_doctor):
    make_doctor(first_name="Lisa", last_name="Cuddy", specialization=Specialization.CARDIOLOGIST)
    make_doctor()
    via_query = client.get("/doctors?specialization=cardiologist").get_json()
    via_path = client.get("/api/doctors/specialization/CARDIOLOGIST").get_json()
    assert [doc["lastName"] for doc in via_query["doctors"]] == ["Cuddy"]
    assert via_query["doctors"] == via_path["doctors"]


def test_unknown_specialization_is_rejected(client):
    resp = client.get("/doctors/specialization/ASTRONAUT")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Unknown specialization: ASTRONAUT"


def test_specializations_listing(client):
    body = client.get("/doctors/specializations").get_json()
    assert body["specializations"][:2] == ["THERAPIST", "CARDIOLOGIST"]
    assert len(body["specializations"]) == len(Specialization)


def test_doctor_detail(client, make_doctor):
    doctor_id = make_doctor()
    resp = client.get(f"/doctors/{doctor_id}")
    assert resp.status_code == 200
    assert resp.get_json()["doctor"]["firstName"] == "Gregory"

    missing = client.get("/doctors/ghost")
    assert missing.status_code == 404
    assert missing.get_json() == {"success": False, "message": "Doctor not found"}

import pytest

PASSWORD = "password123"

REGISTRATION = {
    "email": "New.Patient@Example.com",
    "password": "secret1",
    "firstName": "Nora",
    "lastName": "Vance",
    "phone": "+1 555 0199",
}


def test_register_returns_token_and_patient_principal(client):
    resp = client.post("/auth/register", json=REGISTRATION)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["message"] == "Patient registered successfully"
    assert body["user"]["email"] == "new.patient@example.com"
    assert body["user"]["role"] == "PATIENT"
    assert body["user"]["patientId"] == body["user"]["id"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == body["user"]["id"]


def test_register_duplicate_email(client):
    assert client.post("/auth/register", json=REGISTRATION).status_code == 201
    again = client.post("/api/auth/register", json={**REGISTRATION, "email": "new.patient@example.com"})
    assert again.status_code == 400
    assert again.get_json()["message"] == "User with this email already exists"


@pytest.mark.parametrize(
    "override, message",
    [
        ({"password": "123"}, "Password must be at least 6 characters"),
        ({"email": "not-an-email"}, "Email is invalid"),
        ({"firstName": ""}, "First name is required"),
    ],
)
def test_register_validation(client, override, message):
    resp = client.post("/auth/register", json={**REGISTRATION, **override})
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": message}


def test_login_and_me_for_doctor(client, make_doctor):
    doctor_id = make_doctor(email="house@example.com")
    resp = client.post("/auth/login", json={"email": "HOUSE@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["doctorId"] == doctor_id

    # Legacy header is still honoured.
    me = client.get("/auth/me", headers={"x-auth-token": body["token"]})
    assert me.get_json()["user"]["role"] == "DOCTOR"


def test_login_rejects_bad_password(client, make_patient):
    make_patient(email="jane@example.com")
    resp = client.post("/auth/login", json={"email": "jane@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Invalid credentials"}


def test_login_requires_fields(client):
    resp = client.post("/auth/login", json={"email": "jane@example.com"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Password is required"


def test_me_rejects_missing_and_forged_tokens(client):
    assert client.get("/auth/me").status_code == 401
    forged = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert forged.status_code == 401
    assert forged.get_json()["message"] == "Authentication required"


def test_expired_token_is_rejected(app, client, make_patient, auth_headers):
    headers = auth_headers(make_patient())
    app.config["TOKEN_MAX_AGE"] = -1
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_login_is_rate_limited(client, make_patient):
    make_patient(email="jane@example.com")
    codes = [
        client.post("/auth/login", json={"email": "jane@example.com", "password": "wrong"}).status_code
        for _ in range(6)
    ]
    assert codes == [401] * 5 + [429]
    assert client.post("/auth/login", json={"email": "other@example.com", "password": "x"}).status_code == 401

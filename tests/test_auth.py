import json

from homefix_api.app.core.security import _b64_url_encode, create_access_token


def test_register_returns_account_and_token(client):
    response = client.post(
        "/api/v1/auth/register",
        json={
            "email": "Jane@Example.com",
            "password": "secret123",
            "first_name": "Jane",
            "last_name": "Doe",
            "role": "service_provider",
            "phone_number": "+1 555 0100",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "jane@example.com"
    assert body["user"]["role"] == "service_provider"
    assert "password" not in body["user"]


def test_register_defaults_to_homeowner(register):
    user, _ = register(role="homeowner")
    assert user["role"] == "homeowner"


def test_register_duplicate_email_conflicts(client, register):
    register(email="dup@example.com")
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "DUP@example.com", "password": "secret123", "first_name": "A", "last_name": "B"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


def test_register_duplicate_phone_conflicts(client, register):
    register(phone_number="+1 555 0199")
    response = client.post(
        "/api/v1/auth/register",
        json={
            "email": "other@example.com",
            "password": "secret123",
            "first_name": "A",
            "last_name": "B",
            "phone_number": "+1 555 0199",
        },
    )
    assert response.status_code == 409


def test_admin_cannot_self_register(client):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "root@example.com", "password": "secret123", "first_name": "A", "last_name": "B", "role": "admin"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_register_rejects_short_password_and_bad_email(client):
    short = client.post(
        "/api/v1/auth/register",
        json={"email": "a@example.com", "password": "123", "first_name": "A", "last_name": "B"},
    )
    bad_email = client.post(
        "/api/v1/auth/register",
        json={"email": "not-an-email", "password": "secret123", "first_name": "A", "last_name": "B"},
    )
    assert short.status_code == 400
    assert bad_email.status_code == 400
    assert set(short.json()) == {"message", "code"}


def test_login(client, register):
    user, _ = register(email="login@example.com")
    response = client.post("/api/v1/auth/login", json={"email": "LOGIN@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user["id"]


def test_login_with_wrong_password(client, register):
    register(email="wrong@example.com")
    response = client.post("/api/v1/auth/login", json={"email": "wrong@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials", "code": "not_authenticated"}


def test_profile_requires_token(client):
    assert client.get("/api/v1/auth/profile").status_code == 401
    bad = client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer not.a.token"})
    assert bad.status_code == 401


def test_tampered_token_is_rejected(client, homeowner):
    user, headers = homeowner
    header_b64, _, signature_b64 = headers["Authorization"].split()[1].split(".")
    payload_b64 = _b64_url_encode(json.dumps({"sub": str(user["id"]), "role": "admin", "exp": 4102444800}).encode())
    forged = f"{header_b64}.{payload_b64}.{signature_b64}"
    response = client.get("/api/v1/audit/logs", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_expired_token_is_rejected(client, homeowner):
    user, _ = homeowner
    token = create_access_token({"sub": str(user["id"]), "role": "homeowner"}, expires_delta=-10)
    response = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_get_profile(client, homeowner):
    user, headers = homeowner
    response = client.get("/api/v1/auth/profile", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]


def test_update_profile_merges_fields(client, homeowner):
    user, headers = homeowner
    response = client.put("/api/v1/auth/profile", json={"address": "1 Main Road"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["address"] == "1 Main Road"
    assert body["first_name"] == user["first_name"]
    assert body["role"] == "homeowner"


def test_update_profile_ignores_role(client, homeowner):
    _, headers = homeowner
    response = client.put("/api/v1/auth/profile", json={"role": "admin", "last_name": "Smith"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["role"] == "homeowner"


def test_empty_profile_update_is_rejected(client, homeowner):
    _, headers = homeowner
    response = client.put("/api/v1/auth/profile", json={}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_profile_email_taken_by_someone_else(client, register):
    register(email="taken@example.com")
    _, headers = register()
    response = client.put("/api/v1/auth/profile", json={"email": "taken@example.com"}, headers=headers)
    assert response.status_code == 409


def test_profile_rejects_null_names(client, homeowner):
    user, headers = homeowner
    response = client.put("/api/v1/auth/profile", json={"first_name": None}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert client.get("/api/v1/auth/profile", headers=headers).json()["first_name"] == user["first_name"]


def test_profile_can_clear_optional_fields(client, register):
    _, headers = register(phone_number="+1 555 0142", address="3 Oak Lane")
    response = client.put("/api/v1/auth/profile", json={"phone_number": None, "address": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["phone_number"] is None
    assert response.json()["address"] is None

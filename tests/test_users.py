from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import crud
import models
import security

API = "/api"


def test_register_user(test_client: TestClient):
    response = test_client.post(
        f"{API}/users/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "pw-123456", "role": "employer"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["email"] == "alice@example.com"
    # Role is normalised to the enum value
    assert body["user"]["role"] == "EMPLOYER"
    assert "password" not in body["user"] and "passwordHash" not in body["user"]


def test_register_stores_hashed_password(test_client: TestClient, db_session: Session):
    test_client.post(
        f"{API}/users/register",
        json={"name": "Bob", "email": "bob@example.com", "password": "hunter22", "role": "APPLICANT"},
    )
    user = crud.get_user_by_email(db_session, "bob@example.com")
    assert user.password_hash != "hunter22"
    assert security.verify_password("hunter22", user.password_hash)
    assert user.role is models.Role.APPLICANT


def test_register_missing_fields(test_client: TestClient):
    response = test_client.post(f"{API}/users/register", json={"name": "Alice", "email": "a@example.com"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "All fields are required"}


def test_register_invalid_role(test_client: TestClient):
    response = test_client.post(
        f"{API}/users/register",
        json={"name": "Mallory", "email": "m@example.com", "password": "pw", "role": "admin"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Invalid role" in response.json()["error"]
    assert "APPLICANT, EMPLOYER" in response.json()["error"]


def test_register_invalid_email(test_client: TestClient):
    response = test_client.post(
        f"{API}/users/register",
        json={"name": "Alice", "email": "not-an-email", "password": "pw", "role": "employer"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "email" in response.json()["error"]


def test_register_duplicate_email(test_client: TestClient, register_user):
    register_user("Alice", "employer")
    response = test_client.post(
        f"{API}/users/register",
        json={"name": "Alice 2", "email": "alice@example.com", "password": "pw", "role": "applicant"},
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert "already exists" in response.json()["error"]


def test_login_returns_token(test_client: TestClient, register_user):
    register_user("Alice", "employer", password="pw-123456")
    response = test_client.post(f"{API}/users/login", json={"email": "alice@example.com", "password": "pw-123456"})
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["name"] == "Alice"
    claims = security.decode_access_token(body["token"])
    assert claims.user_id == body["user"]["id"]
    assert claims.role == "EMPLOYER"


def test_login_missing_fields(test_client: TestClient):
    response = test_client.post(f"{API}/users/login", json={"email": "alice@example.com"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Email and password are required"}


def test_login_unknown_email(test_client: TestClient):
    response = test_client.post(f"{API}/users/login", json={"email": "ghost@example.com", "password": "x"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Invalid credentials"}


def test_login_wrong_password(test_client: TestClient, register_user):
    register_user("Alice", "employer", password="right-password")
    response = test_client.post(f"{API}/users/login", json={"email": "alice@example.com", "password": "wrong"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid credentials"}


# --- Auth gate --- #
def test_protected_requires_token(test_client: TestClient):
    response = test_client.get(f"{API}/protected")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Not authorized, token missing"}


def test_protected_rejects_non_bearer_scheme(test_client: TestClient):
    response = test_client.get(f"{API}/protected", headers={"Authorization": "Basic abc"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_protected_rejects_invalid_token(test_client: TestClient):
    response = test_client.get(f"{API}/protected", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Not authorized, token invalid"}


def test_protected_rejects_token_for_deleted_user(test_client: TestClient):
    token = security.create_access_token(999999, "APPLICANT")
    response = test_client.get(f"{API}/protected", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Not authorized, user not found"}


def test_protected_returns_identity(test_client: TestClient, register_user):
    user, headers = register_user("Alice", "employer")
    response = test_client.get(f"{API}/protected", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Hello Alice, you have access to this protected route!"
    assert body["user"] == {
        "id": user["id"],
        "email": "alice@example.com",
        "name": "Alice",
        "role": "EMPLOYER",
        "companyId": None,
    }


def test_responses_carry_request_id(test_client: TestClient):
    response = test_client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["X-Request-ID"] == "abc123"

    generated = test_client.get("/health")
    assert len(generated.headers["X-Request-ID"]) == 32

"""Sign-up, sign-in, session retrieval and sign-out."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from medibook.models import UserRole
from medibook.services.auth import ensure_admin_profile, get_profile_by_email
from medibook.utils.config import get_settings


def signup(client: TestClient, email: str = "pat@example.com", password: str = "secret123"):
    return client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "first_name": "Pat",
            "last_name": "Lee",
            "phone": "555-0111",
        },
    )


def test_signup_creates_patient_profile(client: TestClient) -> None:
    response = signup(client)
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "pat@example.com"
    assert body["role"] == "patient"
    assert "password_hash" not in body


def test_duplicate_signup_conflicts(client: TestClient) -> None:
    signup(client)
    assert signup(client, email="PAT@example.com").status_code == 409


def test_signin_session_and_signout(client: TestClient) -> None:
    signup(client)

    bad = client.post("/auth/signin", json={"email": "pat@example.com", "password": "nope"})
    assert bad.status_code == 401

    signin = client.post(
        "/auth/signin",
        json={"email": "pat@example.com", "password": "secret123"},
    )
    assert signin.status_code == 200
    token = signin.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    session = client.get("/auth/session", headers=headers)
    assert session.status_code == 200
    assert session.json()["role"] == "patient"

    assert client.post("/auth/signout", headers=headers).status_code == 204
    assert client.get("/auth/session", headers=headers).status_code == 401


def test_tampered_token_is_rejected(client: TestClient) -> None:
    response = client.get("/auth/session", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_role_is_read_from_profile_not_token(
    client: TestClient,
    db_session: Session,
    admin_headers,
) -> None:
    """Demoting an admin revokes dashboard access for tokens already issued."""

    assert client.get("/admin/dashboard", headers=admin_headers).status_code == 200

    profile = get_profile_by_email(db_session, "admin@clinic.com")
    profile.role = UserRole.PATIENT
    db_session.commit()

    assert client.get("/admin/dashboard", headers=admin_headers).status_code == 403


def test_bootstrap_admin_from_settings(db_session: Session, monkeypatch) -> None:
    settings = get_settings()
    monkeypatch.setattr(settings, "admin_password", "Bootstrap@1")

    profile = ensure_admin_profile(db_session)
    db_session.commit()

    assert profile is not None
    assert profile.role == UserRole.ADMIN
    assert ensure_admin_profile(db_session).id == profile.id

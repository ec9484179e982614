"""
Integration tests for the authentication API.

Covers:
- Sign-up for patients and doctors, duplicate email handling
- Login and refresh-token rotation
- /me reporting memberships and onboarding state
"""

from models import User
from tests.utils import DEFAULT_PASSWORD, add_staff, auth_headers, create_practice_with_admin, create_user


def _signup(client, email="new@example.com", role="patient", password=DEFAULT_PASSWORD):
    return client.post("/api/auth/signup", json={
        "email": email,
        "password": password,
        "first_name": "Pat",
        "last_name": "Smith",
        "role": role,
    })


class TestSignup:

    def test_patient_signup_returns_tokens(self, client, db_session):
        response = _signup(client, email="  Pat@Example.com ")

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "pat@example.com"
        assert data["user"]["role"] == "patient"
        assert data["needs_practice_setup"] is False
        assert data["tokens"]["access_token"]
        assert db_session.query(User).count() == 1

    def test_doctor_signup_needs_practice_setup(self, client):
        response = _signup(client, role="doctor")

        assert response.status_code == 201
        assert response.json()["needs_practice_setup"] is True

    def test_duplicate_email_conflicts(self, client):
        assert _signup(client).status_code == 201
        response = _signup(client, email="NEW@example.com")

        assert response.status_code == 409

    def test_admin_role_cannot_be_requested(self, client):
        assert _signup(client, role="admin").status_code == 400

    def test_short_password_rejected(self, client):
        assert _signup(client, password="short").status_code == 400

    def test_invalid_email_is_a_validation_error(self, client):
        response = _signup(client, email="not-an-email")

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"


class TestLoginAndRefresh:

    def test_login_and_rotate_refresh_token(self, client, db_session):
        create_user(db_session, "doc@example.com")

        login = client.post("/api/auth/login", json={"email": "DOC@example.com", "password": DEFAULT_PASSWORD})
        assert login.status_code == 200
        refresh_token = login.json()["tokens"]["refresh_token"]

        refreshed = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert refreshed.status_code == 200
        assert refreshed.json()["refresh_token"] != refresh_token

        # The presented token was revoked by the rotation
        replay = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert replay.status_code == 401

    def test_wrong_password(self, client, db_session):
        create_user(db_session, "doc@example.com")

        response = client.post("/api/auth/login", json={"email": "doc@example.com", "password": "wrong-password"})

        assert response.status_code == 401

    def test_logout_revokes_refresh_token(self, client, db_session):
        create_user(db_session, "doc@example.com")
        tokens = client.post(
            "/api/auth/login", json={"email": "doc@example.com", "password": DEFAULT_PASSWORD}
        ).json()["tokens"]

        assert client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}).status_code == 200
        assert client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401


class TestMe:

    def test_requires_authentication(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_rejects_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_member_sees_memberships(self, client, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        nurse = create_user(db_session, "nurse@example.com")
        add_staff(db_session, nurse, practice, role="nurse")

        response = client.get("/api/auth/me", headers=auth_headers(nurse))

        assert response.status_code == 200
        data = response.json()
        assert data["needs_practice_setup"] is False
        assert data["tokens"] is None
        assert [m["practice"]["name"] for m in data["memberships"]] == ["Riverside Family Medicine"]
        assert data["memberships"][0]["can_manage_staff"] is False

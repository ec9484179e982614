"""
Unit tests for AuthService.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from models import RefreshToken
from services.auth_service import AuthService, hash_password, verify_password
from tests.utils import add_staff, create_practice_with_admin, create_user
from utils.datetime_utils import utc_now


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-password")
        assert hashed != "s3cret-password"
        assert verify_password("s3cret-password", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_long_passwords_are_distinguished(self):
        # Longer than bcrypt's 72-byte input limit
        base = "x" * 100
        hashed = hash_password(base + "a")
        assert not verify_password(base + "b", hashed)

    def test_verify_against_garbage_hash(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestSignup:

    def test_signup_creates_user(self, db_session):
        user = AuthService.signup(db_session, "  New.Doctor@Example.com ", "password123", "New", "Doctor", "doctor")

        assert user.id is not None
        assert user.email == "new.doctor@example.com"
        assert user.role == "doctor"
        assert verify_password("password123", user.password_hash)

    def test_signup_duplicate_email(self, db_session):
        AuthService.signup(db_session, "dup@example.com", "password123", "A", "B", "patient")

        with pytest.raises(HTTPException) as exc_info:
            AuthService.signup(db_session, "DUP@example.com", "password123", "C", "D", "patient")

        assert exc_info.value.status_code == 409

    def test_signup_rejects_admin_role(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AuthService.signup(db_session, "x@example.com", "password123", "A", "B", "admin")
        assert exc_info.value.status_code == 400

    def test_signup_rejects_short_password(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AuthService.signup(db_session, "x@example.com", "short", "A", "B", "patient")
        assert exc_info.value.status_code == 400

    def test_system_admin_email_gets_admin_role(self, db_session):
        with patch("services.auth_service.config.SYSTEM_ADMIN_EMAILS", ["root@example.com"]):
            user = AuthService.signup(db_session, "root@example.com", "password123", "Root", "Admin", "doctor")
        assert user.role == "admin"


class TestAuthenticate:

    def test_authenticate_success_sets_last_login(self, db_session):
        create_user(db_session, "doc@example.com", password="password123")

        user = AuthService.authenticate(db_session, "DOC@example.com", "password123")

        assert user.last_login_at is not None

    @pytest.mark.parametrize("email,password", [
        ("doc@example.com", "wrong-password"),
        ("nobody@example.com", "password123"),
    ])
    def test_authenticate_failure(self, db_session, email, password):
        create_user(db_session, "doc@example.com", password="password123")

        with pytest.raises(HTTPException) as exc_info:
            AuthService.authenticate(db_session, email, password)
        assert exc_info.value.status_code == 401


class TestRefreshTokens:

    def test_refresh_rotates_token(self, db_session):
        user = create_user(db_session, "doc@example.com")
        tokens = AuthService.issue_tokens(db_session, user)

        new_tokens = AuthService.refresh(db_session, tokens["refresh_token"])

        assert new_tokens["refresh_token"] != tokens["refresh_token"]
        with pytest.raises(HTTPException) as exc_info:
            AuthService.refresh(db_session, tokens["refresh_token"])
        assert exc_info.value.status_code == 401

    def test_expired_refresh_token_rejected(self, db_session):
        user = create_user(db_session, "doc@example.com")
        tokens = AuthService.issue_tokens(db_session, user)
        record = db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).one()
        record.expires_at = utc_now() - timedelta(minutes=1)
        db_session.commit()

        with pytest.raises(HTTPException) as exc_info:
            AuthService.refresh(db_session, tokens["refresh_token"])
        assert exc_info.value.status_code == 401

    def test_logout_revokes_token(self, db_session):
        user = create_user(db_session, "doc@example.com")
        tokens = AuthService.issue_tokens(db_session, user)

        AuthService.logout(db_session, tokens["refresh_token"])
        AuthService.logout(db_session, "unknown-token-value")

        record = db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).one()
        assert record.revoked is True


class TestNeedsPracticeSetup:

    def test_doctor_without_practice_needs_setup(self, db_session):
        user = create_user(db_session, "doc@example.com", role="doctor")
        assert AuthService.needs_practice_setup(db_session, user)

    def test_doctor_with_membership_does_not(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        user = create_user(db_session, "doc@example.com", role="doctor")
        add_staff(db_session, user, practice, role="doctor")
        assert not AuthService.needs_practice_setup(db_session, user)

    def test_patients_never_need_setup(self, db_session):
        user = create_user(db_session, "pat@example.com", role="patient")
        assert not AuthService.needs_practice_setup(db_session, user)

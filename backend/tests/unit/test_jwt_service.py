"""
Tests for JWT service functionality.
"""

import jwt
from datetime import datetime, timedelta, timezone

import pytest

from services.jwt_service import jwt_service, TokenPayload


def _payload(**overrides) -> TokenPayload:
    data = {"sub": "42", "email": "doc@example.com", "role": "doctor", "name": "Dana Doctor"}
    data.update(overrides)
    return TokenPayload(**data)


class TestJWTService:
    """Test JWT token creation, validation, and refresh functionality."""

    def test_access_token_round_trip(self):
        token = jwt_service.create_access_token(_payload())
        verified = jwt_service.verify_token(token)

        assert verified is not None
        assert verified.user_id == 42
        assert verified.email == "doc@example.com"
        assert verified.role == "doctor"
        assert verified.exp is not None and verified.iat is not None

    def test_verify_token_invalid(self):
        assert jwt_service.verify_token("invalid.jwt.token") is None

    def test_verify_token_expired(self):
        expired = jwt.encode(
            {
                "sub": "1", "email": "a@example.com", "role": "patient", "name": "A",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=5),
            },
            jwt_service._get_secret_key(),
            algorithm=jwt_service.ALGORITHM,
        )
        assert jwt_service.verify_token(expired) is None

    def test_verify_token_wrong_secret(self):
        token = jwt.encode(
            {"sub": "1", "email": "a@example.com", "role": "patient", "name": "A"},
            "some-other-secret",
            algorithm="HS256",
        )
        assert jwt_service.verify_token(token) is None

    def test_verify_token_with_foreign_payload(self):
        token = jwt.encode({"user_id": 1}, jwt_service._get_secret_key(), algorithm="HS256")
        assert jwt_service.verify_token(token) is None

    def test_refresh_token_hash_verification(self):
        bcrypt_hash, sha256_hash = jwt_service.create_refresh_token_hash("test_refresh_token")

        assert jwt_service.verify_refresh_token_hash("test_refresh_token", bcrypt_hash)
        assert not jwt_service.verify_refresh_token_hash("other_token", bcrypt_hash)
        assert sha256_hash == jwt_service.get_refresh_token_sha256_hash("test_refresh_token")
        assert len(sha256_hash) == 64

    def test_create_token_pair(self):
        pair = jwt_service.create_token_pair(_payload())

        assert pair["token_type"] == "bearer"
        assert pair["expires_in"] == jwt_service.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert jwt_service.verify_refresh_token_hash(pair["refresh_token"], pair["refresh_token_hash"])

    def test_get_token_expiry_unknown_type(self):
        with pytest.raises(ValueError):
            jwt_service.get_token_expiry("session")

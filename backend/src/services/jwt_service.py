"""
JWT Service for access and refresh token management.

Provides secure token creation, validation, and refresh functionality
for authentication and session management.
"""

import bcrypt
import jwt
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from pydantic import BaseModel

from core.config import JWT_ACCESS_TOKEN_EXPIRE_MINUTES, JWT_REFRESH_TOKEN_EXPIRE_DAYS


class TokenPayload(BaseModel):
    """Payload structure for JWT tokens."""
    sub: str  # User ID
    email: str
    role: str  # "patient", "doctor" or "admin"
    name: str
    iat: Optional[int] = None  # Set by JWT service
    exp: Optional[int] = None  # Set by JWT service

    @property
    def user_id(self) -> int:
        return int(self.sub)


class JWTService:
    """Service for JWT token operations."""

    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    REFRESH_TOKEN_EXPIRE_DAYS = JWT_REFRESH_TOKEN_EXPIRE_DAYS

    @classmethod
    def create_access_token(cls, payload: TokenPayload) -> str:
        """Create a JWT access token."""
        to_encode = payload.model_dump(exclude={"iat", "exp"})
        now = datetime.now(timezone.utc)
        to_encode.update({"exp": now + timedelta(minutes=cls.ACCESS_TOKEN_EXPIRE_MINUTES), "iat": now})
        return jwt.encode(to_encode, cls._get_secret_key(), algorithm=cls.ALGORITHM)

    @classmethod
    def verify_token(cls, token: str) -> Optional[TokenPayload]:
        """Verify and decode a JWT token. Returns None for expired or invalid tokens."""
        try:
            payload = jwt.decode(token, cls._get_secret_key(), algorithms=[cls.ALGORITHM])
            return TokenPayload(**payload)
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None
        except ValueError:
            # Signed with our key but not one of our payloads
            return None

    @classmethod
    def create_refresh_token_hash(cls, token: str) -> tuple[str, str]:
        """
        Create a bcrypt hash of a refresh token.

        Returns:
            tuple: (bcrypt_hash, sha256_hash_hex)
            - bcrypt_hash: Full bcrypt hash for verification
            - sha256_hash_hex: SHA-256 hash in hex format for O(1) lookup
        """
        # SHA-256 first keeps the input within bcrypt's 72-byte limit
        token_hash_digest = hashlib.sha256(token.encode('utf-8')).digest()
        hashed = bcrypt.hashpw(token_hash_digest, bcrypt.gensalt())
        return (hashed.decode('utf-8'), cls.get_refresh_token_sha256_hash(token))

    @classmethod
    def verify_refresh_token_hash(cls, token: str, hashed_token: str) -> bool:
        """Verify a refresh token against its hash."""
        try:
            token_hash = hashlib.sha256(token.encode('utf-8')).digest()
            return bcrypt.checkpw(token_hash, hashed_token.encode('utf-8'))
        except ValueError:
            return False

    @classmethod
    def get_refresh_token_sha256_hash(cls, token: str) -> str:
        """SHA-256 hex digest of a refresh token, used for lookup."""
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    @classmethod
    def get_token_expiry(cls, token_type: str) -> datetime:
        """Get expiry datetime for a token type."""
        now = datetime.now(timezone.utc)
        if token_type == "access":
            return now + timedelta(minutes=cls.ACCESS_TOKEN_EXPIRE_MINUTES)
        elif token_type == "refresh":
            return now + timedelta(days=cls.REFRESH_TOKEN_EXPIRE_DAYS)
        else:
            raise ValueError(f"Unknown token type: {token_type}")

    @classmethod
    def _get_secret_key(cls) -> str:
        """Get the JWT secret key."""
        from core.config import JWT_SECRET_KEY
        return JWT_SECRET_KEY

    @classmethod
    def create_token_pair(cls, payload: TokenPayload) -> Dict[str, Any]:
        """Create both access and refresh tokens."""
        access_token = cls.create_access_token(payload)

        refresh_token = secrets.token_urlsafe(64)
        refresh_token_hash, refresh_token_hash_sha256 = cls.create_refresh_token_hash(refresh_token)

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "refresh_token_hash": refresh_token_hash,
            "refresh_token_hash_sha256": refresh_token_hash_sha256,
            "token_type": "bearer",
            "expires_in": cls.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
            "expires_at": int(cls.get_token_expiry("access").timestamp()),
        }


# Global instance
jwt_service = JWTService()

"""
Authentication service for email/password accounts.

Handles sign-up, credential checks and the refresh-token lifecycle
(issue, rotate, revoke). Access tokens are minted by JWTService.
"""

import hashlib
import logging
from typing import Any, Dict, Optional

import bcrypt
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core import config
from core.constants import MIN_PASSWORD_LENGTH, SIGNUP_ROLES, USER_ROLE_ADMIN, USER_ROLE_DOCTOR
from models import RefreshToken, Staff, User
from services.jwt_service import TokenPayload, jwt_service
from utils.datetime_utils import utc_now
from utils.db_errors import is_unique_violation
from utils.validators import normalize_email

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (SHA-256 pre-hash keeps it under 72 bytes)."""
    digest = hashlib.sha256(password.encode('utf-8')).hexdigest().encode('ascii')
    return bcrypt.hashpw(digest, bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its stored hash."""
    digest = hashlib.sha256(password.encode('utf-8')).hexdigest().encode('ascii')
    try:
        return bcrypt.checkpw(digest, password_hash.encode('utf-8'))
    except ValueError:
        return False


class AuthService:
    """Account creation, login and token rotation."""

    @staticmethod
    def signup(
        db: Session,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str,
        phone: Optional[str] = None,
    ) -> User:
        """
        Create a new portal account.

        Emails listed in SYSTEM_ADMIN_EMAILS are given the admin role
        regardless of the requested role.

        Raises:
            HTTPException: 400 for invalid role or weak password,
                409 if the email is already registered
        """
        normalized_email = normalize_email(email)

        if role not in SIGNUP_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Role must be one of: {', '.join(sorted(SIGNUP_ROLES))}"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        if normalized_email in config.SYSTEM_ADMIN_EMAILS:
            role = USER_ROLE_ADMIN

        user = User(
            email=normalized_email,
            password_hash=hash_password(password),
            role=role,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="An account with this email already exists"
                )
            raise
        db.refresh(user)
        logger.info(f"Created {user.role} account {user.id}")
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> User:
        """
        Verify credentials and return the user.

        Raises:
            HTTPException: 401 if the email is unknown or the password is wrong
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )
        user.last_login_at = utc_now()
        db.commit()
        return user

    @staticmethod
    def issue_tokens(db: Session, user: User) -> Dict[str, Any]:
        """Create an access/refresh token pair and persist the refresh token."""
        payload = TokenPayload(
            sub=str(user.id),
            email=user.email,
            role=user.role,
            name=user.full_name,
        )
        token_data = jwt_service.create_token_pair(payload)

        db.add(RefreshToken(
            user_id=user.id,
            token_hash=token_data["refresh_token_hash"],
            token_hash_sha256=token_data["refresh_token_hash_sha256"],
            expires_at=jwt_service.get_token_expiry("refresh"),
        ))
        db.commit()

        return {
            "access_token": token_data["access_token"],
            "refresh_token": token_data["refresh_token"],
            "token_type": token_data["token_type"],
            "expires_in": token_data["expires_in"],
            "expires_at": token_data["expires_at"],
        }

    @staticmethod
    def _find_refresh_token(db: Session, refresh_token: str) -> Optional[RefreshToken]:
        sha256_hash = jwt_service.get_refresh_token_sha256_hash(refresh_token)
        record = db.query(RefreshToken).filter(RefreshToken.token_hash_sha256 == sha256_hash).first()
        if record and jwt_service.verify_refresh_token_hash(refresh_token, record.token_hash):
            return record
        return None

    @staticmethod
    def refresh(db: Session, refresh_token: str) -> Dict[str, Any]:
        """
        Rotate a refresh token: revoke the presented one and issue a new pair.

        Raises:
            HTTPException: 401 if the token is unknown, revoked or expired
        """
        record = AuthService._find_refresh_token(db, refresh_token)
        if not record or not record.is_valid:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired refresh token"
            )

        user = db.query(User).filter(User.id == record.user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found"
            )

        record.update_last_used()
        record.revoke()
        return AuthService.issue_tokens(db, user)

    @staticmethod
    def logout(db: Session, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown tokens are ignored."""
        record = AuthService._find_refresh_token(db, refresh_token)
        if record and not record.revoked:
            record.revoke()
            db.commit()

    @staticmethod
    def needs_practice_setup(db: Session, user: User) -> bool:
        """A doctor without any active staff membership still has to finish onboarding."""
        if user.role != USER_ROLE_DOCTOR:
            return False
        active_staff = db.query(Staff).filter(
            Staff.user_id == user.id,
            Staff.status == "active"
        ).first()
        return active_staff is None

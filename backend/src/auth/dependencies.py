# pyright: reportMissingTypeStubs=false
"""
Authentication and authorization dependencies for FastAPI.

Provides dependency injection functions for user authentication and
portal-wide role checks. Practice-scoped checks live in auth.permissions.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.constants import USER_ROLE_ADMIN, USER_ROLE_DOCTOR, USER_ROLE_PATIENT
from core.database import get_db
from services.jwt_service import jwt_service, TokenPayload
from models import User

logger = logging.getLogger(__name__)


class UserContext:
    """Authenticated user context extracted from JWT token."""

    def __init__(self, user_id: int, email: str, role: str, name: str):
        self.user_id = user_id
        self.email = email
        self.role = role  # "patient", "doctor" or "admin"
        self.name = name

    def is_system_admin(self) -> bool:
        """Check if user is a portal-wide administrator."""
        return self.role == USER_ROLE_ADMIN

    def is_doctor(self) -> bool:
        return self.role == USER_ROLE_DOCTOR

    def is_patient(self) -> bool:
        return self.role == USER_ROLE_PATIENT

    def __repr__(self) -> str:
        return f"UserContext(user_id={self.user_id}, email='{self.email}', role='{self.role}')"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None
    return jwt_service.verify_token(credentials.credentials)


def resolve_user(payload: Optional[TokenPayload], db: Session) -> Optional[User]:
    """Load the user a token payload refers to, or None if it no longer matches."""
    if not payload:
        return None
    try:
        user_id = payload.user_id
    except ValueError:
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.email != payload.email:
        return None
    return user


def get_current_user_record(
    payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> User:
    """Get the authenticated User row from the JWT token."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided"
        )

    user = resolve_user(payload, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return user


def get_current_user(user: User = Depends(get_current_user_record)) -> UserContext:
    """Get authenticated user context from JWT token."""
    return UserContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        name=user.full_name,
    )


def authenticate_token(token: Optional[str], db: Session) -> Optional[UserContext]:
    """
    Authenticate a raw access token (used by WebSocket endpoints, which
    cannot send an Authorization header from browsers).
    """
    if not token:
        return None
    user = resolve_user(jwt_service.verify_token(token), db)
    if not user:
        return None
    return UserContext(user_id=user.id, email=user.email, role=user.role, name=user.full_name)


# Role-based authorization dependencies
def require_system_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require system admin access."""
    if not user.is_system_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="System admin access required"
        )
    return user


def require_doctor(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require a doctor account."""
    if not user.is_doctor():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Doctor access required"
        )
    return user


def require_patient(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require a patient account."""
    if not user.is_patient():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Patient access required"
        )
    return user

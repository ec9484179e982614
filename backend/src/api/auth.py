# pyright: reportMissingTypeStubs=false
"""
Authentication API endpoints.

Email/password sign-up and login, refresh-token rotation, logout and the
current user's profile with practice memberships.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from auth.dependencies import get_current_user_record
from core.database import get_db
from models import User
from services.auth_service import AuthService
from services.practice_service import PracticeService
from utils.validators import normalize_email, validate_phone_optional
from api.responses import (
    AuthResponse, MembershipResponse, PracticeResponse, SuccessResponse, TokenResponse, UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class SignupRequest(BaseModel):
    """Request model for account sign-up."""
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: str = "patient"
    phone: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_optional(v)


class LoginRequest(BaseModel):
    """Request model for login."""
    email: str
    password: str


class RefreshRequest(BaseModel):
    """Request model carrying a refresh token."""
    refresh_token: str = Field(min_length=10)


def build_memberships(db: Session, user: User) -> List[MembershipResponse]:
    """The user's active practice memberships."""
    return [
        MembershipResponse(
            practice=PracticeResponse.model_validate(practice),
            staff_id=staff.id,
            role=staff.role,
            department=staff.department,
            permissions=staff.permissions or [],
            can_manage_staff=staff.can_manage_staff,
        )
        for practice, staff in PracticeService.list_user_practices(db, user.id)
    ]


def build_auth_response(db: Session, user: User, tokens: Optional[dict] = None) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        needs_practice_setup=AuthService.needs_practice_setup(db, user),
        memberships=build_memberships(db, user),
        tokens=TokenResponse(**tokens) if tokens else None,
    )


@router.post("/signup", summary="Create an account", status_code=status.HTTP_201_CREATED)
async def signup(
    signup_data: SignupRequest,
    db: Session = Depends(get_db)
) -> AuthResponse:
    """
    Create a patient or doctor account and sign it in.

    Doctors start with ``needs_practice_setup`` set until they create or
    join a practice.
    """
    try:
        user = AuthService.signup(
            db,
            email=signup_data.email,
            password=signup_data.password,
            first_name=signup_data.first_name,
            last_name=signup_data.last_name,
            role=signup_data.role,
            phone=signup_data.phone,
        )
        tokens = AuthService.issue_tokens(db, user)
        return build_auth_response(db, user, tokens)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error during signup: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create account"
        )


@router.post("/login", summary="Sign in with email and password")
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db)
) -> AuthResponse:
    """Verify credentials and return a token pair."""
    try:
        user = AuthService.authenticate(db, credentials.email, credentials.password)
        tokens = AuthService.issue_tokens(db, user)
        return build_auth_response(db, user, tokens)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error during login: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed"
        )


@router.post("/refresh", summary="Refresh access token")
async def refresh_access_token(
    refresh_data: RefreshRequest,
    db: Session = Depends(get_db)
) -> TokenResponse:
    """Exchange a refresh token for a new pair; the presented token is revoked."""
    tokens = AuthService.refresh(db, refresh_data.refresh_token)
    return TokenResponse(**tokens)


@router.post("/logout", summary="Logout")
async def logout(
    refresh_data: RefreshRequest,
    db: Session = Depends(get_db)
) -> SuccessResponse:
    """Revoke the given refresh token."""
    AuthService.logout(db, refresh_data.refresh_token)
    return SuccessResponse(message="Logged out")


@router.get("/me", summary="Current user profile")
async def get_me(
    user: User = Depends(get_current_user_record),
    db: Session = Depends(get_db)
) -> AuthResponse:
    """Profile, active memberships and onboarding state of the caller."""
    return build_auth_response(db, user)

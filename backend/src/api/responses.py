"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Response model for the authenticated user's profile."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    created_at: datetime


class TokenResponse(BaseModel):
    """Access/refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: int


class PracticeResponse(BaseModel):
    """Response model for practice information."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class MembershipResponse(BaseModel):
    """A practice together with the caller's role in it."""
    practice: PracticeResponse
    staff_id: int
    role: str
    department: Optional[str] = None
    permissions: List[str]
    can_manage_staff: bool


class AuthResponse(BaseModel):
    """Sign-up / login / me response."""
    user: UserResponse
    needs_practice_setup: bool
    memberships: List[MembershipResponse] = []
    tokens: Optional[TokenResponse] = None


class StaffResponse(BaseModel):
    """Response model for a staff member of a practice."""
    id: int
    user_id: int
    practice_id: int
    full_name: str
    email: str
    role: str
    department: Optional[str] = None
    permissions: List[str]
    status: str
    source: str
    hire_date: Optional[date] = None


class StaffListResponse(BaseModel):
    """Response model for listing staff."""
    staff: List[StaffResponse]
    can_manage: bool


class InvitationResponse(BaseModel):
    """Response model for a staff invitation (token omitted)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    department: Optional[str] = None
    practice_id: int
    status: str
    expires_at: datetime


class InvitationListResponse(BaseModel):
    invitations: List[InvitationResponse]


class JoinRequestResponse(BaseModel):
    """Response model for a join request."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    practice_id: int
    requested_role: str
    message: Optional[str] = None
    status: str
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class JoinRequestListResponse(BaseModel):
    join_requests: List[JoinRequestResponse]


class DoctorResponse(BaseModel):
    """Response model for a doctor profile."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    specialty: str
    license_number: str
    availability_status: str
    working_hours: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    """Response model for a notification."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: str
    link: Optional[str] = None
    read: bool
    created_at: datetime


class NotificationFeedResponse(BaseModel):
    """Newest notifications plus the unread count among them."""
    notifications: List[NotificationResponse]
    unread_count: int


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None

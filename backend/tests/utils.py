"""
Test utilities for practice portal tests.
"""

from datetime import timedelta
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from core.constants import OWNER_PERMISSIONS, STAFF_SOURCE_OWNER
from models import Doctor, Notification, Practice, PracticeInvitation, Staff, User
from models.practice_invitation import INVITATION_STATUS_PENDING
from services.auth_service import hash_password
from services.jwt_service import TokenPayload, jwt_service
from utils.datetime_utils import utc_now

DEFAULT_PASSWORD = "correct-horse-battery"


def create_user(
    db_session: Session,
    email: str,
    role: str = "doctor",
    first_name: str = "Test",
    last_name: str = "User",
    password: str = DEFAULT_PASSWORD,
) -> User:
    """Create and commit a user with a hashed password."""
    user = User(
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
    )
    db_session.add(user)
    db_session.commit()
    return user


def create_practice_with_admin(
    db_session: Session,
    admin_email: str = "owner@example.com",
    practice_name: str = "Riverside Family Medicine",
) -> Tuple[Practice, User, Staff]:
    """Create a practice whose owner is an active admin staff member."""
    owner = create_user(db_session, admin_email, role="doctor", first_name="Olivia", last_name="Owner")
    practice = Practice(name=practice_name, email="front@riverside.example")
    db_session.add(practice)
    db_session.flush()

    staff = Staff(
        user_id=owner.id,
        practice_id=practice.id,
        role="admin",
        department="Administration",
        permissions=list(OWNER_PERMISSIONS),
        status="active",
        source=STAFF_SOURCE_OWNER,
    )
    db_session.add(staff)
    db_session.commit()
    return practice, owner, staff


def add_staff(db_session: Session, user: User, practice: Practice, role: str = "nurse", permissions=None) -> Staff:
    staff = Staff(
        user_id=user.id,
        practice_id=practice.id,
        role=role,
        permissions=list(permissions or []),
        status="active",
        source="invitation",
    )
    db_session.add(staff)
    db_session.commit()
    return staff


def create_doctor_profile(db_session: Session, user: User, availability_status: str = "active") -> Doctor:
    doctor = Doctor(
        user_id=user.id,
        specialty="Family Medicine",
        license_number="MD-12345",
        availability_status=availability_status,
    )
    db_session.add(doctor)
    db_session.commit()
    return doctor


def create_invitation(
    db_session: Session,
    practice: Practice,
    email: str,
    invited_by: Optional[int] = None,
    role: str = "nurse",
    token: str = "5f0c3c1e-8d8e-4b43-9a57-6c3d2a1b0e9f",
    expires_in: timedelta = timedelta(days=7),
    status: str = INVITATION_STATUS_PENDING,
) -> PracticeInvitation:
    """Insert an invitation directly, e.g. one that is already expired."""
    invitation = PracticeInvitation(
        practice_id=practice.id,
        email=email.lower(),
        role=role,
        invited_by=invited_by,
        invitation_token=token,
        expires_at=utc_now() + expires_in,
        status=status,
    )
    db_session.add(invitation)
    db_session.commit()
    return invitation


def create_notification(db_session: Session, user: User, title: str = "Hello", read: bool = False) -> Notification:
    notification = Notification(
        user_id=user.id,
        type="info",
        title=title,
        message=f"{title} message",
        read=read,
    )
    db_session.add(notification)
    db_session.commit()
    return notification


def create_access_token(user: User) -> str:
    """Create a JWT access token for a user."""
    return jwt_service.create_access_token(TokenPayload(
        sub=str(user.id),
        email=user.email,
        role=user.role,
        name=user.full_name,
    ))


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}

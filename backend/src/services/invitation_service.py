"""
Invitation service for staff and patient invitations.

Staff invitations provision a Staff row when accepted; patient invitations
create a PatientAssignment. Both use single-use UUID tokens that expire after
INVITATION_EXPIRY_DAYS. Acceptance claims the invitation with a conditional
status update so that it can succeed at most once, even under concurrent
requests, and the claim is rolled back if provisioning fails.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core import config
from core.constants import INVITABLE_STAFF_ROLES, STAFF_SOURCE_INVITATION, USER_ROLE_PATIENT
from models import PatientAssignment, PatientInvitation, PracticeInvitation, User
from models.practice_invitation import (
    INVITATION_STATUS_ACCEPTED, INVITATION_STATUS_EXPIRED, INVITATION_STATUS_PENDING, INVITATION_STATUS_REVOKED,
)
from services.notification_service import NotificationService
from services.practice_service import PracticeService
from utils.datetime_utils import utc_now
from utils.validators import normalize_email

logger = logging.getLogger(__name__)

# Failure codes returned by acceptance
ACCEPT_NOT_FOUND = "not_found"
ACCEPT_EXPIRED = "expired"
ACCEPT_NOT_PENDING = "not_pending"
ACCEPT_EMAIL_MISMATCH = "email_mismatch"
ACCEPT_ALREADY_MEMBER = "already_member"
ACCEPT_NOT_PATIENT = "not_patient"

INVALID_INVITATION_MESSAGE = "This invitation is invalid or has expired."


@dataclass
class InvitationAcceptResult:
    """Outcome of an acceptance attempt."""
    success: bool
    error_code: Optional[str] = None
    error: Optional[str] = None
    practice_id: Optional[int] = None
    role: Optional[str] = None
    staff_id: Optional[int] = None
    assignment_id: Optional[int] = None

    @classmethod
    def failure(cls, error_code: str, error: str) -> "InvitationAcceptResult":
        return cls(success=False, error_code=error_code, error=error)


def build_accept_url(path: str, token: str) -> str:
    """Acceptance link for an invitation token, e.g. /accept-invitation?token=..."""
    site_url = (config.SITE_URL or "http://localhost:5173").rstrip("/")
    return f"{site_url}/{path}?token={token}"


def _new_token() -> str:
    return str(uuid.uuid4())


def _expiry():
    return utc_now() + timedelta(days=config.INVITATION_EXPIRY_DAYS)


class InvitationService:
    """Service class for staff invitations."""

    @staticmethod
    def create_invitation(
        db: Session,
        practice_id: int,
        email: str,
        role: str,
        invited_by: int,
        department: Optional[str] = None,
    ) -> PracticeInvitation:
        """
        Persist a pending staff invitation.

        Args:
            db: Database session
            practice_id: Practice the invitee will join
            email: Invitee email (normalized here)
            role: One of INVITABLE_STAFF_ROLES (case-insensitive)
            invited_by: ID of the inviting user
            department: Optional department

        Returns:
            The committed invitation

        Raises:
            HTTPException: 400 for an invalid role, 404 if the practice does not exist
        """
        normalized_role = role.strip().lower()
        if normalized_role not in INVITABLE_STAFF_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid role. Must be one of: {', '.join(INVITABLE_STAFF_ROLES)}"
            )

        PracticeService.get_practice(db, practice_id)

        invitation = PracticeInvitation(
            practice_id=practice_id,
            email=normalize_email(email),
            role=normalized_role,
            department=department or None,
            invited_by=invited_by,
            invitation_token=_new_token(),
            expires_at=_expiry(),
            status=INVITATION_STATUS_PENDING,
        )
        db.add(invitation)
        db.commit()
        db.refresh(invitation)
        logger.info(f"Staff invitation {invitation.id} created for practice {practice_id}")
        return invitation

    @staticmethod
    def get_usable_invitation(db: Session, token: str) -> PracticeInvitation:
        """
        Look up a pending, unexpired invitation by token.

        Raises:
            HTTPException: 404 if the token is unknown, used, revoked or expired
        """
        invitation = db.query(PracticeInvitation).filter(
            PracticeInvitation.invitation_token == token
        ).first()
        if not invitation or not invitation.is_usable:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=INVALID_INVITATION_MESSAGE
            )
        return invitation

    @staticmethod
    def accept_invitation(db: Session, token: str, user: User) -> InvitationAcceptResult:
        """
        Accept a staff invitation for the given user.

        Checks run in order: existence, expiry (regardless of status), pending
        status, email identity, existing membership. On success the status
        flip, the staff row and the inviter's notification commit together.
        """
        invitation = db.query(PracticeInvitation).filter(
            PracticeInvitation.invitation_token == token
        ).first()
        if not invitation:
            return InvitationAcceptResult.failure(ACCEPT_NOT_FOUND, "Invitation not found")
        if invitation.is_expired:
            return InvitationAcceptResult.failure(ACCEPT_EXPIRED, "This invitation has expired")
        if invitation.status != INVITATION_STATUS_PENDING:
            return InvitationAcceptResult.failure(ACCEPT_NOT_PENDING, "This invitation is no longer valid")
        if user.email.strip().lower() != invitation.email.strip().lower():
            logger.warning(f"User {user.id} tried to accept invitation {invitation.id} addressed to another email")
            return InvitationAcceptResult.failure(
                ACCEPT_EMAIL_MISMATCH,
                "This invitation was sent to a different email address"
            )

        claimed = db.query(PracticeInvitation).filter(
            PracticeInvitation.id == invitation.id,
            PracticeInvitation.status == INVITATION_STATUS_PENDING
        ).update(
            {
                PracticeInvitation.status: INVITATION_STATUS_ACCEPTED,
                PracticeInvitation.accepted_at: utc_now(),
                PracticeInvitation.accepted_by: user.id,
            },
            synchronize_session=False,
        )
        if claimed != 1:
            db.rollback()
            return InvitationAcceptResult.failure(ACCEPT_NOT_PENDING, "This invitation is no longer valid")

        try:
            staff = PracticeService.provision_staff(
                db,
                user_id=user.id,
                practice_id=invitation.practice_id,
                role=invitation.role,
                source=STAFF_SOURCE_INVITATION,
                department=invitation.department,
            )
        except HTTPException:
            db.rollback()
            return InvitationAcceptResult.failure(ACCEPT_ALREADY_MEMBER, "You are already a member of this practice")

        if invitation.invited_by:
            NotificationService.create_notification(
                db,
                user_id=invitation.invited_by,
                notification_type="invitation_accepted",
                title="Invitation accepted",
                message=f"{user.full_name} joined {invitation.practice.name} as {invitation.role}",
                link="/doctor/practice",
            )

        db.commit()
        db.refresh(invitation)
        logger.info(f"Invitation {invitation.id} accepted by user {user.id}; staff {staff.id}")
        return InvitationAcceptResult(
            success=True,
            practice_id=invitation.practice_id,
            role=invitation.role,
            staff_id=staff.id,
        )

    @staticmethod
    def list_invitations(db: Session, practice_id: int, status_filter: Optional[str] = None) -> List[PracticeInvitation]:
        """Invitations of a practice, newest first."""
        query = db.query(PracticeInvitation).filter(PracticeInvitation.practice_id == practice_id)
        if status_filter:
            query = query.filter(PracticeInvitation.status == status_filter)
        return query.order_by(PracticeInvitation.created_at.desc(), PracticeInvitation.id.desc()).all()

    @staticmethod
    def get_invitation(db: Session, invitation_id: int) -> PracticeInvitation:
        invitation = db.query(PracticeInvitation).filter(PracticeInvitation.id == invitation_id).first()
        if not invitation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitation not found"
            )
        return invitation

    @staticmethod
    def revoke_invitation(db: Session, invitation: PracticeInvitation) -> PracticeInvitation:
        """
        Revoke a pending invitation.

        Raises:
            HTTPException: 409 if the invitation is no longer pending
        """
        revoked = db.query(PracticeInvitation).filter(
            PracticeInvitation.id == invitation.id,
            PracticeInvitation.status == INVITATION_STATUS_PENDING
        ).update({PracticeInvitation.status: INVITATION_STATUS_REVOKED}, synchronize_session=False)
        if revoked != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Only pending invitations can be revoked", "code": ACCEPT_NOT_PENDING}
            )
        db.commit()
        db.refresh(invitation)
        return invitation

    @staticmethod
    def expire_stale_invitations(db: Session) -> int:
        """Mark pending staff and patient invitations past their expiry as expired."""
        now = utc_now()
        expired = 0
        for model in (PracticeInvitation, PatientInvitation):
            expired += db.query(model).filter(
                model.status == INVITATION_STATUS_PENDING,
                model.expires_at <= now
            ).update({model.status: INVITATION_STATUS_EXPIRED}, synchronize_session=False)
        db.commit()
        return expired


class PatientInvitationService:
    """Service class for patient invitations."""

    @staticmethod
    def create_invitation(db: Session, practice_id: int, email: str, invited_by: int) -> PatientInvitation:
        """Persist a pending patient invitation."""
        PracticeService.get_practice(db, practice_id)

        invitation = PatientInvitation(
            practice_id=practice_id,
            email=normalize_email(email),
            invited_by=invited_by,
            invitation_token=_new_token(),
            expires_at=_expiry(),
            status=INVITATION_STATUS_PENDING,
        )
        db.add(invitation)
        db.commit()
        db.refresh(invitation)
        logger.info(f"Patient invitation {invitation.id} created for practice {practice_id}")
        return invitation

    @staticmethod
    def get_usable_invitation(db: Session, token: str) -> PatientInvitation:
        invitation = db.query(PatientInvitation).filter(
            PatientInvitation.invitation_token == token
        ).first()
        if not invitation or not invitation.is_usable:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=INVALID_INVITATION_MESSAGE
            )
        return invitation

    @staticmethod
    def accept_invitation(db: Session, token: str, user: User) -> InvitationAcceptResult:
        """Accept a patient invitation; same ordering rules as staff invitations."""
        invitation = db.query(PatientInvitation).filter(
            PatientInvitation.invitation_token == token
        ).first()
        if not invitation:
            return InvitationAcceptResult.failure(ACCEPT_NOT_FOUND, "Invitation not found")
        if invitation.is_expired:
            return InvitationAcceptResult.failure(ACCEPT_EXPIRED, "This invitation has expired")
        if invitation.status != INVITATION_STATUS_PENDING:
            return InvitationAcceptResult.failure(ACCEPT_NOT_PENDING, "This invitation is no longer valid")
        if user.email.strip().lower() != invitation.email.strip().lower():
            return InvitationAcceptResult.failure(
                ACCEPT_EMAIL_MISMATCH,
                "This invitation was sent to a different email address"
            )
        if user.role != USER_ROLE_PATIENT:
            return InvitationAcceptResult.failure(ACCEPT_NOT_PATIENT, "Only patient accounts can accept this invitation")

        assignment = db.query(PatientAssignment).filter(
            PatientAssignment.patient_id == user.id,
            PatientAssignment.practice_id == invitation.practice_id
        ).first()
        if assignment and assignment.status == "active":
            return InvitationAcceptResult.failure(ACCEPT_ALREADY_MEMBER, "You are already a patient of this practice")

        claimed = db.query(PatientInvitation).filter(
            PatientInvitation.id == invitation.id,
            PatientInvitation.status == INVITATION_STATUS_PENDING
        ).update(
            {
                PatientInvitation.status: INVITATION_STATUS_ACCEPTED,
                PatientInvitation.accepted_at: utc_now(),
                PatientInvitation.accepted_by: user.id,
            },
            synchronize_session=False,
        )
        if claimed != 1:
            db.rollback()
            return InvitationAcceptResult.failure(ACCEPT_NOT_PENDING, "This invitation is no longer valid")

        if assignment:
            assignment.status = "active"
        else:
            assignment = PatientAssignment(patient_id=user.id, practice_id=invitation.practice_id, status="active")
            db.add(assignment)

        if invitation.invited_by:
            NotificationService.create_notification(
                db,
                user_id=invitation.invited_by,
                notification_type="patient_joined",
                title="Patient joined",
                message=f"{user.full_name} accepted your invitation to {invitation.practice.name}",
                link="/doctor/patients",
            )

        db.commit()
        db.refresh(invitation)
        db.refresh(assignment)
        logger.info(f"Patient invitation {invitation.id} accepted by user {user.id}")
        return InvitationAcceptResult(
            success=True,
            practice_id=invitation.practice_id,
            role=USER_ROLE_PATIENT,
            assignment_id=assignment.id,
        )

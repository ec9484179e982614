# pyright: reportMissingTypeStubs=false
"""
Staff invitation API endpoints.

Creating an invitation stores it first and then emails the acceptance link
on a best-effort basis; acceptance provisions the staff membership.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, get_current_user_record
from auth.permissions import require_staff_manager
from core.database import get_db
from models import User
from services.email_service import EmailResult, EMAIL_FAILED_NOTE, email_service
from services.invitation_service import (
    ACCEPT_ALREADY_MEMBER, ACCEPT_EMAIL_MISMATCH, ACCEPT_EXPIRED, ACCEPT_NOT_FOUND, ACCEPT_NOT_PATIENT,
    ACCEPT_NOT_PENDING, InvitationAcceptResult, InvitationService, build_accept_url,
)
from services.practice_service import PracticeService
from utils.validators import normalize_email, optional_text
from api.responses import InvitationListResponse, InvitationResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ACCEPT_ERROR_STATUS = {
    ACCEPT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ACCEPT_EXPIRED: status.HTTP_410_GONE,
    ACCEPT_NOT_PENDING: status.HTTP_409_CONFLICT,
    ACCEPT_EMAIL_MISMATCH: status.HTTP_403_FORBIDDEN,
    ACCEPT_NOT_PATIENT: status.HTTP_403_FORBIDDEN,
    ACCEPT_ALREADY_MEMBER: status.HTTP_409_CONFLICT,
}


class InvitationSendRequest(BaseModel):
    """Request body for sending a staff invitation."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    role: str = Field(min_length=1, max_length=50)
    department: Optional[str] = None
    practice_id: int = Field(alias="practiceId")
    practice_name: str = Field(alias="practiceName", min_length=1, max_length=200)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator('department')
    @classmethod
    def validate_department(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, 'Department', 100)


class InvitationSendResponse(BaseModel):
    success: bool = True
    message: str
    invitation: InvitationResponse
    email_sent: bool
    note: Optional[str] = None


class InvitationDetailsResponse(BaseModel):
    """What the acceptance page shows before the user accepts."""
    practice_id: int
    practice_name: str
    email: str
    role: str
    department: Optional[str] = None
    expires_at: Any
    email_matches: bool


def accept_result_response(result: InvitationAcceptResult) -> JSONResponse:
    """Render an acceptance outcome as {success, error?} with a matching status code."""
    if result.success:
        content: Dict[str, Any] = {
            "success": True,
            "practice_id": result.practice_id,
            "role": result.role,
        }
        if result.staff_id is not None:
            content["staff_id"] = result.staff_id
        if result.assignment_id is not None:
            content["assignment_id"] = result.assignment_id
        return JSONResponse(status_code=status.HTTP_200_OK, content=content)

    return JSONResponse(
        status_code=ACCEPT_ERROR_STATUS.get(result.error_code or "", status.HTTP_400_BAD_REQUEST),
        content={"success": False, "error": result.error, "code": result.error_code},
    )


async def send_invitation_email_safely(send) -> EmailResult:
    """Await an email send; any failure degrades to an unsent result."""
    try:
        return await send
    except Exception as e:
        logger.exception(f"Failed to send invitation email (continuing anyway): {e}")
        return EmailResult(sent=False, note=EMAIL_FAILED_NOTE)


@router.post("/invitations", summary="Invite a staff member")
async def send_invitation(
    request: InvitationSendRequest,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> InvitationSendResponse:
    """
    Create a staff invitation and email the acceptance link.

    Requires permission to manage staff in the target practice. Email
    delivery failure does not fail the request; it is reported through
    ``email_sent`` and ``note``.
    """
    try:
        practice = PracticeService.get_practice(db, request.practice_id)
        PracticeService.ensure_staff_manager(db, current_user.user_id, practice.id, current_user.is_system_admin())

        invitation = InvitationService.create_invitation(
            db,
            practice_id=practice.id,
            email=request.email,
            role=request.role,
            invited_by=current_user.user_id,
            department=request.department,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating invitation for practice {request.practice_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create invitation"
        )

    email_result = await send_invitation_email_safely(
        email_service.send_staff_invitation(
            to_email=invitation.email,
            practice_name=practice.name,
            role=invitation.role,
            department=invitation.department,
            accept_url=build_accept_url("accept-invitation", invitation.invitation_token),
        )
    )

    return InvitationSendResponse(
        message=f"Invitation created for {invitation.email} as {invitation.role}",
        invitation=InvitationResponse.model_validate(invitation),
        email_sent=email_result.sent,
        note=email_result.note,
    )


@router.get("/invitations/{token}", summary="Get invitation details")
async def get_invitation(
    token: str,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> InvitationDetailsResponse:
    """Details of a pending, unexpired invitation for the acceptance page."""
    invitation = InvitationService.get_usable_invitation(db, token)
    return InvitationDetailsResponse(
        practice_id=invitation.practice_id,
        practice_name=invitation.practice.name,
        email=invitation.email,
        role=invitation.role,
        department=invitation.department,
        expires_at=invitation.expires_at,
        email_matches=invitation.email == current_user.email.lower(),
    )


@router.post("/invitations/{token}/accept", summary="Accept an invitation")
async def accept_invitation(
    token: str,
    user: User = Depends(get_current_user_record),
    db: Session = Depends(get_db)
) -> JSONResponse:
    """
    Accept a staff invitation as the current user.

    Succeeds at most once per invitation. Returns ``{success, error?}``.
    """
    try:
        result = InvitationService.accept_invitation(db, token, user)
    except Exception as e:
        logger.exception(f"Error accepting invitation: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to accept invitation"
        )
    return accept_result_response(result)


@router.get("/practices/{practice_id}/invitations", summary="List practice invitations")
async def list_invitations(
    practice_id: int,
    status_filter: Optional[str] = None,
    current_user: UserContext = Depends(require_staff_manager()),
    db: Session = Depends(get_db)
) -> InvitationListResponse:
    invitations = InvitationService.list_invitations(db, practice_id, status_filter)
    return InvitationListResponse(invitations=[InvitationResponse.model_validate(i) for i in invitations])


@router.post("/invitations/{invitation_id}/revoke", summary="Revoke an invitation")
async def revoke_invitation(
    invitation_id: int,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> InvitationResponse:
    """Revoke a pending invitation (staff managers of its practice)."""
    invitation = InvitationService.get_invitation(db, invitation_id)
    PracticeService.ensure_staff_manager(db, current_user.user_id, invitation.practice_id, current_user.is_system_admin())
    return InvitationResponse.model_validate(InvitationService.revoke_invitation(db, invitation))

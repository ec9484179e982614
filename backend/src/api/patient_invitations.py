# pyright: reportMissingTypeStubs=false
"""
Patient invitation API endpoints.

Any active staff member may invite a patient by email; accepting links the
patient account to the practice.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, get_current_user_record
from core.database import get_db
from models import User
from services.email_service import email_service
from services.invitation_service import PatientInvitationService, build_accept_url
from services.practice_service import PracticeService
from utils.validators import normalize_email
from api.invitations import accept_result_response, send_invitation_email_safely

logger = logging.getLogger(__name__)

router = APIRouter()


class PatientInvitationSendRequest(BaseModel):
    """Request body for inviting a patient."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    practice_id: int = Field(alias="practiceId")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class PatientInvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    practice_id: int
    status: str
    expires_at: Any


@router.post("/patient-invitations", summary="Invite a patient")
async def send_patient_invitation(
    request: PatientInvitationSendRequest,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> dict[str, Any]:
    """Create a patient invitation and email the acceptance link."""
    try:
        practice = PracticeService.get_practice(db, request.practice_id)
        PracticeService.ensure_member(db, current_user.user_id, practice.id, current_user.is_system_admin())
        invitation = PatientInvitationService.create_invitation(
            db,
            practice_id=practice.id,
            email=request.email,
            invited_by=current_user.user_id,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating patient invitation for practice {request.practice_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create invitation"
        )

    email_result = await send_invitation_email_safely(
        email_service.send_patient_invitation(
            to_email=invitation.email,
            practice_name=practice.name,
            accept_url=build_accept_url("accept-patient-invitation", invitation.invitation_token),
        )
    )

    response: dict[str, Any] = {
        "success": True,
        "message": f"Invitation created for {invitation.email}",
        "invitation": PatientInvitationResponse.model_validate(invitation).model_dump(mode="json"),
        "email_sent": email_result.sent,
    }
    if email_result.note:
        response["note"] = email_result.note
    return response


@router.get("/patient-invitations/{token}", summary="Get patient invitation details")
async def get_patient_invitation(
    token: str,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> dict[str, Any]:
    invitation = PatientInvitationService.get_usable_invitation(db, token)
    return {
        "practice_id": invitation.practice_id,
        "practice_name": invitation.practice.name,
        "email": invitation.email,
        "expires_at": invitation.expires_at,
        "email_matches": invitation.email == current_user.email.lower(),
    }


@router.post("/patient-invitations/{token}/accept", summary="Accept a patient invitation")
async def accept_patient_invitation(
    token: str,
    user: User = Depends(get_current_user_record),
    db: Session = Depends(get_db)
) -> JSONResponse:
    """Accept a patient invitation as the current (patient) user."""
    try:
        result = PatientInvitationService.accept_invitation(db, token, user)
    except Exception as e:
        logger.exception(f"Error accepting patient invitation: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to accept invitation"
        )
    return accept_result_response(result)

# pyright: reportMissingTypeStubs=false
"""
Practice join request API endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, get_current_user_record
from auth.permissions import require_staff_manager
from core.constants import JOIN_REQUEST_MESSAGE_MAX_LENGTH
from core.database import get_db
from models import User
from services.join_request_service import JoinRequestService
from services.practice_service import PracticeService
from api.responses import JoinRequestListResponse, JoinRequestResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class JoinRequestCreate(BaseModel):
    """Request body for asking to join a practice."""
    role: str = Field(min_length=1, max_length=50)
    message: Optional[str] = Field(default=None, max_length=JOIN_REQUEST_MESSAGE_MAX_LENGTH)


@router.post(
    "/practices/{practice_id}/join-requests",
    summary="Request to join a practice",
    status_code=status.HTTP_201_CREATED
)
async def submit_join_request(
    practice_id: int,
    request: JoinRequestCreate,
    user: User = Depends(get_current_user_record),
    db: Session = Depends(get_db)
) -> JoinRequestResponse:
    """
    Submit a pending join request.

    A second pending request for the same practice is answered with 409 and
    the ``duplicate_join_request`` code.
    """
    try:
        join_request = JoinRequestService.submit_join_request(
            db, user, practice_id, request.role, request.message
        )
        return JoinRequestResponse.model_validate(join_request)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error submitting join request for practice {practice_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit join request"
        )


@router.get("/practices/{practice_id}/join-requests", summary="List join requests of a practice")
async def list_practice_join_requests(
    practice_id: int,
    status_filter: Optional[str] = "pending",
    current_user: UserContext = Depends(require_staff_manager()),
    db: Session = Depends(get_db)
) -> JoinRequestListResponse:
    requests = JoinRequestService.list_practice_requests(db, practice_id, status_filter or None)
    return JoinRequestListResponse(join_requests=[JoinRequestResponse.model_validate(r) for r in requests])


@router.get("/join-requests/mine", summary="Join requests of the current user")
async def list_my_join_requests(
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> JoinRequestListResponse:
    requests = JoinRequestService.list_user_requests(db, current_user.user_id)
    return JoinRequestListResponse(join_requests=[JoinRequestResponse.model_validate(r) for r in requests])


@router.post("/join-requests/{request_id}/approve", summary="Approve a join request")
async def approve_join_request(
    request_id: int,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> JoinRequestResponse:
    """Approve a pending request; the requester becomes an active staff member."""
    join_request = JoinRequestService.get_join_request(db, request_id)
    PracticeService.ensure_staff_manager(
        db, current_user.user_id, join_request.practice_id, current_user.is_system_admin()
    )
    try:
        return JoinRequestResponse.model_validate(
            JoinRequestService.approve(db, join_request, current_user.user_id)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error approving join request {request_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve join request"
        )


@router.post("/join-requests/{request_id}/reject", summary="Reject a join request")
async def reject_join_request(
    request_id: int,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> JoinRequestResponse:
    join_request = JoinRequestService.get_join_request(db, request_id)
    PracticeService.ensure_staff_manager(
        db, current_user.user_id, join_request.practice_id, current_user.is_system_admin()
    )
    return JoinRequestResponse.model_validate(
        JoinRequestService.reject(db, join_request, current_user.user_id)
    )

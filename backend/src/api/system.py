# pyright: reportMissingTypeStubs=false
"""
System admin API endpoints.

Portal-wide overview for platform administrators.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.database import get_db
from auth.dependencies import require_system_admin, UserContext
from models import Practice, PracticeInvitation, PracticeJoinRequest, Staff
from models.practice_invitation import INVITATION_STATUS_PENDING
from models.practice_join_request import JOIN_REQUEST_STATUS_PENDING

logger = logging.getLogger(__name__)

router = APIRouter()


class PracticeOverview(BaseModel):
    """A practice with its membership counts."""
    id: int
    name: str
    email: Optional[str] = None
    active_staff: int
    pending_invitations: int
    pending_join_requests: int
    created_at: datetime


class PracticeOverviewList(BaseModel):
    practices: List[PracticeOverview]


def _counts_by_practice(db: Session, model, *criteria) -> dict[int, int]:
    rows = db.query(model.practice_id, func.count(model.id)).filter(*criteria).group_by(model.practice_id).all()
    return {practice_id: count for practice_id, count in rows}


@router.get("/practices", summary="List all practices")
async def list_practices(
    current_user: UserContext = Depends(require_system_admin),
    db: Session = Depends(get_db)
) -> PracticeOverviewList:
    """All practices with active staff, pending invitation and pending join request counts."""
    staff_counts = _counts_by_practice(db, Staff, Staff.status == "active")
    invitation_counts = _counts_by_practice(
        db, PracticeInvitation, PracticeInvitation.status == INVITATION_STATUS_PENDING
    )
    request_counts = _counts_by_practice(
        db, PracticeJoinRequest, PracticeJoinRequest.status == JOIN_REQUEST_STATUS_PENDING
    )

    practices = db.query(Practice).order_by(Practice.name).all()
    return PracticeOverviewList(
        practices=[
            PracticeOverview(
                id=practice.id,
                name=practice.name,
                email=practice.email,
                active_staff=staff_counts.get(practice.id, 0),
                pending_invitations=invitation_counts.get(practice.id, 0),
                pending_join_requests=request_counts.get(practice.id, 0),
                created_at=practice.created_at,
            )
            for practice in practices
        ]
    )

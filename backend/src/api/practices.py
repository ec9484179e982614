# pyright: reportMissingTypeStubs=false
"""
Practice API endpoints: onboarding, search, details and staff management.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, require_doctor
from auth.permissions import require_practice_manager, require_practice_member, require_staff_manager
from core.database import get_db
from services.practice_service import PracticeService
from api.form_schemas import DoctorDetails, PracticeDetails, PracticeUpdate
from api.responses import (
    DoctorResponse, PracticeResponse, StaffListResponse, StaffResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class PracticeCreateRequest(BaseModel):
    """Owner onboarding: the new practice plus the owner's doctor details."""
    practice: PracticeDetails
    doctor: DoctorDetails


class PracticeCreateResponse(BaseModel):
    practice: PracticeResponse
    doctor: DoctorResponse
    staff_id: int


class PracticeSearchResponse(BaseModel):
    practices: List[PracticeResponse]


@router.post("", summary="Create a practice", status_code=status.HTTP_201_CREATED)
async def create_practice(
    request: PracticeCreateRequest,
    current_user: UserContext = Depends(require_doctor),
    db: Session = Depends(get_db)
) -> PracticeCreateResponse:
    """
    Create a practice owned by the calling doctor.

    The practice, the doctor's profile and the doctor's admin staff row
    are created together.
    """
    try:
        practice, doctor, staff = PracticeService.create_practice(
            db,
            owner_user_id=current_user.user_id,
            practice_data=request.practice.model_dump(),
            specialty=request.doctor.specialty,
            license_number=request.doctor.license_number,
        )
        return PracticeCreateResponse(
            practice=PracticeResponse.model_validate(practice),
            doctor=DoctorResponse.model_validate(doctor),
            staff_id=staff.id,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating practice for user {current_user.user_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create practice"
        )


@router.get("/search", summary="Search practices")
async def search_practices(
    q: str = Query("", max_length=200),
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> PracticeSearchResponse:
    """Find practices by name or email (case-insensitive, at most 10)."""
    practices = PracticeService.search_practices(db, q)
    return PracticeSearchResponse(practices=[PracticeResponse.model_validate(p) for p in practices])


@router.get("/mine", summary="Practices of the current user")
async def list_my_practices(
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> PracticeSearchResponse:
    """Practices in which the caller is an active staff member."""
    rows = PracticeService.list_user_practices(db, current_user.user_id)
    return PracticeSearchResponse(practices=[PracticeResponse.model_validate(p) for p, _ in rows])


@router.get("/{practice_id}", summary="Get practice details")
async def get_practice(
    practice_id: int,
    current_user: UserContext = Depends(require_practice_member()),
    db: Session = Depends(get_db)
) -> PracticeResponse:
    return PracticeResponse.model_validate(PracticeService.get_practice(db, practice_id))


@router.put("/{practice_id}", summary="Update practice details")
async def update_practice(
    practice_id: int,
    updates: PracticeUpdate,
    current_user: UserContext = Depends(require_practice_manager()),
    db: Session = Depends(get_db)
) -> PracticeResponse:
    """Update practice details (admins or holders of manage_practice)."""
    changes = updates.model_dump(exclude_unset=True)
    if changes.get("name", "") is None:
        changes.pop("name")
    try:
        practice = PracticeService.update_practice(db, practice_id, changes)
        return PracticeResponse.model_validate(practice)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating practice {practice_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update practice"
        )


@router.get("/{practice_id}/staff", summary="List practice staff")
async def list_staff(
    practice_id: int,
    include_inactive: bool = False,
    current_user: UserContext = Depends(require_practice_member()),
    db: Session = Depends(get_db)
) -> StaffListResponse:
    """Staff members with names; inactive rows only for staff managers."""
    own_staff = PracticeService.get_active_staff(db, current_user.user_id, practice_id)
    can_manage = current_user.is_system_admin() or bool(own_staff and own_staff.can_manage_staff)

    rows = PracticeService.list_staff(db, practice_id, include_inactive=include_inactive and can_manage)
    return StaffListResponse(
        staff=[
            StaffResponse(
                id=staff.id,
                user_id=user.id,
                practice_id=staff.practice_id,
                full_name=user.full_name,
                email=user.email,
                role=staff.role,
                department=staff.department,
                permissions=staff.permissions or [],
                status=staff.status,
                source=staff.source,
                hire_date=staff.hire_date,
            )
            for staff, user in rows
        ],
        can_manage=can_manage,
    )


@router.delete("/{practice_id}/staff/{staff_id}", summary="Remove a staff member")
async def remove_staff(
    practice_id: int,
    staff_id: int,
    current_user: UserContext = Depends(require_staff_manager()),
    db: Session = Depends(get_db)
) -> dict[str, object]:
    """Deactivate a staff member (the row is kept for history)."""
    try:
        staff = PracticeService.deactivate_staff(db, practice_id, staff_id)
        return {"success": True, "staff_id": staff.id, "status": staff.status}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error removing staff {staff_id} from practice {practice_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove staff member"
        )

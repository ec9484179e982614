# pyright: reportMissingTypeStubs=false
"""
Doctor profile and availability status endpoints.

The status toggle answers with the committed value; realtime listeners
receive the same change through the change feed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, require_doctor
from core.database import get_db
from services.doctor_service import DoctorService
from api.form_schemas import DoctorDetails, DoctorProfileUpdate
from api.responses import DoctorResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class StatusToggleResponse(BaseModel):
    doctor_id: int
    availability_status: str
    message: str


class DoctorStatusResponse(BaseModel):
    doctor_id: int
    availability_status: str


@router.get("/doctors/me", summary="Current doctor's profile")
async def get_my_profile(
    current_user: UserContext = Depends(require_doctor),
    db: Session = Depends(get_db)
) -> DoctorResponse:
    return DoctorResponse.model_validate(DoctorService.get_by_user_id(db, current_user.user_id))


@router.post("/doctors/me", summary="Create doctor profile", status_code=status.HTTP_201_CREATED)
async def create_my_profile(
    details: DoctorDetails,
    current_user: UserContext = Depends(require_doctor),
    db: Session = Depends(get_db)
) -> DoctorResponse:
    """Create a doctor profile for a doctor joining an existing practice."""
    doctor = DoctorService.create_profile(db, current_user.user_id, details.specialty, details.license_number)
    return DoctorResponse.model_validate(doctor)


@router.put("/doctors/me", summary="Update doctor profile")
async def update_my_profile(
    updates: DoctorProfileUpdate,
    current_user: UserContext = Depends(require_doctor),
    db: Session = Depends(get_db)
) -> DoctorResponse:
    doctor = DoctorService.get_by_user_id(db, current_user.user_id)
    changes = {key: value for key, value in updates.model_dump(exclude_unset=True).items() if value is not None}
    return DoctorResponse.model_validate(DoctorService.update_profile(db, doctor, changes))


@router.post("/doctors/me/status/toggle", summary="Toggle availability status")
async def toggle_my_status(
    current_user: UserContext = Depends(require_doctor),
    db: Session = Depends(get_db)
) -> StatusToggleResponse:
    """
    Flip the caller's availability between active and away.

    The response carries the stored status; if the write fails nothing
    changes and the client keeps showing the previous value.
    """
    doctor = DoctorService.get_by_user_id(db, current_user.user_id)
    try:
        result = DoctorService.toggle_status(db, doctor)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error toggling status for doctor {doctor.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update status"
        )
    return StatusToggleResponse(
        doctor_id=result.doctor_id,
        availability_status=result.availability_status,
        message=result.message,
    )


@router.get("/doctors/{doctor_id}/status", summary="Doctor availability status")
async def get_doctor_status(
    doctor_id: int,
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> DoctorStatusResponse:
    doctor = DoctorService.get_by_id(db, doctor_id)
    return DoctorStatusResponse(doctor_id=doctor.id, availability_status=doctor.availability_status)

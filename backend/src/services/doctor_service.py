"""
Doctor profile and availability status service.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import DOCTOR_STATUS_ACTIVE, DOCTOR_STATUS_AWAY
from models import Doctor
from utils.db_errors import is_unique_violation

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    DOCTOR_STATUS_ACTIVE: "Active",
    DOCTOR_STATUS_AWAY: "Away",
}


@dataclass
class StatusToggleResult:
    """Committed availability status and the confirmation message to show."""
    doctor_id: int
    availability_status: str

    @property
    def message(self) -> str:
        return f"Status changed to {STATUS_LABELS[self.availability_status]}"


class DoctorService:
    """Service class for doctor profiles."""

    @staticmethod
    def get_by_user_id(db: Session, user_id: int) -> Doctor:
        """
        Get the doctor profile of a user.

        Raises:
            HTTPException: 404 if the user has no doctor profile
        """
        doctor = db.query(Doctor).filter(Doctor.user_id == user_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor profile not found"
            )
        return doctor

    @staticmethod
    def get_by_id(db: Session, doctor_id: int) -> Doctor:
        doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    @staticmethod
    def create_profile(db: Session, user_id: int, specialty: str, license_number: str) -> Doctor:
        """
        Create a doctor profile without a practice (employee onboarding path).

        Raises:
            HTTPException: 409 if the user already has a profile
        """
        doctor = Doctor(user_id=user_id, specialty=specialty, license_number=license_number)
        db.add(doctor)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Doctor profile already exists"
                )
            raise
        db.refresh(doctor)
        return doctor

    @staticmethod
    def update_profile(db: Session, doctor: Doctor, updates: Dict[str, Any]) -> Doctor:
        for key, value in updates.items():
            setattr(doctor, key, value)
        db.commit()
        db.refresh(doctor)
        return doctor

    @staticmethod
    def set_status(db: Session, doctor: Doctor, new_status: str) -> StatusToggleResult:
        """
        Persist an availability status.

        The result is built from the committed row, so callers only ever see a
        status that was actually stored.
        """
        if new_status not in STATUS_LABELS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Status must be one of: {', '.join(STATUS_LABELS)}"
            )

        doctor.availability_status = new_status
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(doctor)
        logger.info(f"Doctor {doctor.id} availability set to {doctor.availability_status}")
        return StatusToggleResult(doctor_id=doctor.id, availability_status=doctor.availability_status)

    @staticmethod
    def toggle_status(db: Session, doctor: Doctor) -> StatusToggleResult:
        """Flip between active and away."""
        current: Optional[str] = doctor.availability_status or DOCTOR_STATUS_ACTIVE
        new_status = DOCTOR_STATUS_AWAY if current == DOCTOR_STATUS_ACTIVE else DOCTOR_STATUS_ACTIVE
        return DoctorService.set_status(db, doctor, new_status)

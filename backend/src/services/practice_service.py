"""
Practice service for onboarding, practice details and staff membership.

Staff rows are provisioned here for all three paths (owner, invitation,
join request) so the one-row-per-(user, practice) rule and reactivation
of removed members behave the same everywhere.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.constants import (
    OWNER_DEPARTMENT, OWNER_PERMISSIONS, PRACTICE_SEARCH_LIMIT, STAFF_SOURCE_OWNER,
)
from models import Doctor, Practice, Staff, User
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class PracticeService:
    """Service class for practice and staff operations."""

    @staticmethod
    def get_practice(db: Session, practice_id: int) -> Practice:
        """
        Get a practice by ID.

        Raises:
            HTTPException: 404 if the practice does not exist
        """
        practice = db.query(Practice).filter(Practice.id == practice_id).first()
        if not practice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Practice not found"
            )
        return practice

    @staticmethod
    def get_active_staff(db: Session, user_id: int, practice_id: int) -> Optional[Staff]:
        """Return the user's active staff row in a practice, if any."""
        return db.query(Staff).filter(
            Staff.user_id == user_id,
            Staff.practice_id == practice_id,
            Staff.status == "active"
        ).first()

    @staticmethod
    def ensure_member(db: Session, user_id: int, practice_id: int, is_system_admin: bool = False) -> Optional[Staff]:
        """
        Require an active membership in the practice (system admins pass).

        Raises:
            HTTPException: 403 if the user is not an active member
        """
        staff = PracticeService.get_active_staff(db, user_id, practice_id)
        if staff is None and not is_system_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not a member of this practice"
            )
        return staff

    @staticmethod
    def ensure_staff_manager(db: Session, user_id: int, practice_id: int, is_system_admin: bool = False) -> Optional[Staff]:
        """
        Require permission to manage staff in the practice.

        Raises:
            HTTPException: 403 if the user cannot manage staff
        """
        staff = PracticeService.get_active_staff(db, user_id, practice_id)
        if is_system_admin:
            return staff
        if staff is None or not staff.can_manage_staff:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Staff management permission required"
            )
        return staff

    @staticmethod
    def ensure_practice_manager(db: Session, user_id: int, practice_id: int, is_system_admin: bool = False) -> Optional[Staff]:
        """
        Require permission to edit practice details.

        Raises:
            HTTPException: 403 if the user cannot manage the practice
        """
        staff = PracticeService.get_active_staff(db, user_id, practice_id)
        if is_system_admin:
            return staff
        if staff is None or not staff.can_manage_practice:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Practice management permission required"
            )
        return staff

    @staticmethod
    def provision_staff(
        db: Session,
        user_id: int,
        practice_id: int,
        role: str,
        source: str,
        department: Optional[str] = None,
        permissions: Optional[List[str]] = None,
    ) -> Staff:
        """
        Create or reactivate the staff row for a user in a practice.

        Does not commit; the caller commits together with its own changes.

        Raises:
            HTTPException: 409 if the user is already an active member
        """
        existing = db.query(Staff).filter(
            Staff.user_id == user_id,
            Staff.practice_id == practice_id
        ).first()

        if existing and existing.status == "active":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "User is already a member of this practice", "code": "already_member"}
            )

        if existing:
            existing.role = role
            existing.department = department
            existing.permissions = list(permissions or [])
            existing.status = "active"
            existing.source = source
            existing.hire_date = utc_now().date()
            logger.info(f"Reactivated staff {existing.id} for user {user_id} in practice {practice_id} via {source}")
            return existing

        staff = Staff(
            user_id=user_id,
            practice_id=practice_id,
            role=role,
            department=department,
            permissions=list(permissions or []),
            status="active",
            source=source,
            hire_date=utc_now().date(),
        )
        db.add(staff)
        db.flush()
        logger.info(f"Provisioned staff {staff.id} for user {user_id} in practice {practice_id} via {source}")
        return staff

    @staticmethod
    def upsert_doctor_profile(db: Session, user_id: int, specialty: str, license_number: str) -> Doctor:
        """Create the doctor profile or update its professional details. Does not commit."""
        doctor = db.query(Doctor).filter(Doctor.user_id == user_id).first()
        if doctor:
            doctor.specialty = specialty
            doctor.license_number = license_number
            return doctor

        doctor = Doctor(user_id=user_id, specialty=specialty, license_number=license_number)
        db.add(doctor)
        return doctor

    @staticmethod
    def create_practice(
        db: Session,
        owner_user_id: int,
        practice_data: Dict[str, Any],
        specialty: str,
        license_number: str,
    ) -> Tuple[Practice, Doctor, Staff]:
        """
        Create a practice owned by a doctor.

        The practice, the owner's doctor profile and the owner's admin staff
        row are written in one transaction; any failure rolls back all three.

        Args:
            db: Database session
            owner_user_id: ID of the doctor creating the practice
            practice_data: Validated name/address/phone/email
            specialty: Owner's specialty
            license_number: Owner's license number

        Returns:
            Tuple of (practice, doctor profile, staff row)
        """
        try:
            practice = Practice(**practice_data)
            db.add(practice)
            db.flush()

            doctor = PracticeService.upsert_doctor_profile(db, owner_user_id, specialty, license_number)
            staff = PracticeService.provision_staff(
                db,
                user_id=owner_user_id,
                practice_id=practice.id,
                role="admin",
                source=STAFF_SOURCE_OWNER,
                department=OWNER_DEPARTMENT,
                permissions=OWNER_PERMISSIONS,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(practice)
        logger.info(f"Practice {practice.id} created by user {owner_user_id}")
        return practice, doctor, staff

    @staticmethod
    def update_practice(db: Session, practice_id: int, updates: Dict[str, Any]) -> Practice:
        """Apply validated field updates to a practice."""
        practice = PracticeService.get_practice(db, practice_id)
        for key, value in updates.items():
            setattr(practice, key, value)
        db.commit()
        db.refresh(practice)
        return practice

    @staticmethod
    def search_practices(db: Session, query: str) -> List[Practice]:
        """Case-insensitive name/email search, limited to a handful of results."""
        term = (query or "").strip()
        if not term:
            return []

        pattern = f"%{term.lower()}%"
        return db.query(Practice).filter(
            or_(
                func.lower(Practice.name).like(pattern),
                func.lower(Practice.email).like(pattern),
            )
        ).order_by(Practice.name).limit(PRACTICE_SEARCH_LIMIT).all()

    @staticmethod
    def list_user_practices(db: Session, user_id: int) -> List[Tuple[Practice, Staff]]:
        """Practices in which the user has an active membership."""
        rows = db.query(Practice, Staff).join(
            Staff, Staff.practice_id == Practice.id
        ).filter(
            Staff.user_id == user_id,
            Staff.status == "active"
        ).order_by(Practice.name).all()
        return [(practice, staff) for practice, staff in rows]

    @staticmethod
    def list_staff(db: Session, practice_id: int, include_inactive: bool = False) -> List[Tuple[Staff, User]]:
        """Staff of a practice with their user records."""
        query = db.query(Staff, User).join(User, User.id == Staff.user_id).filter(
            Staff.practice_id == practice_id
        )
        if not include_inactive:
            query = query.filter(Staff.status == "active")
        rows = query.order_by(Staff.created_at, Staff.id).all()
        return [(staff, user) for staff, user in rows]

    @staticmethod
    def deactivate_staff(db: Session, practice_id: int, staff_id: int) -> Staff:
        """
        Remove a member from a practice by marking the row inactive.

        Raises:
            HTTPException: 404 if the row is not in this practice,
                400 if it is the practice's last active admin
        """
        staff = db.query(Staff).filter(
            Staff.id == staff_id,
            Staff.practice_id == practice_id
        ).first()
        if not staff:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Staff member not found"
            )

        if staff.status != "active":
            return staff

        if staff.role == "admin":
            other_admins = db.query(Staff).filter(
                Staff.practice_id == practice_id,
                Staff.status == "active",
                Staff.role == "admin",
                Staff.id != staff.id
            ).count()
            if other_admins == 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot remove the last admin of a practice"
                )

        staff.status = "inactive"
        db.commit()
        db.refresh(staff)
        logger.info(f"Deactivated staff {staff.id} in practice {practice_id}")
        return staff

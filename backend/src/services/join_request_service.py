"""
Join request service.

Users ask to join a practice; staff managers approve or reject. Duplicate
pending requests are rejected by the database's partial unique index and
surfaced as a dedicated conflict rather than a generic failure.
"""

import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import JOIN_REQUEST_ROLES, STAFF_SOURCE_JOIN_REQUEST, USER_ROLE_PATIENT
from models import PracticeJoinRequest, User
from models.practice_join_request import (
    JOIN_REQUEST_STATUS_APPROVED, JOIN_REQUEST_STATUS_PENDING, JOIN_REQUEST_STATUS_REJECTED,
)
from services.notification_service import NotificationService
from services.practice_service import PracticeService
from utils.datetime_utils import utc_now
from utils.db_errors import is_unique_violation

logger = logging.getLogger(__name__)

DUPLICATE_JOIN_REQUEST_CODE = "duplicate_join_request"
DUPLICATE_JOIN_REQUEST_MESSAGE = "You have already submitted a request to join this practice."


class JoinRequestService:
    """Service class for practice join requests."""

    @staticmethod
    def submit_join_request(
        db: Session,
        user: User,
        practice_id: int,
        role: str,
        message: Optional[str] = None,
    ) -> PracticeJoinRequest:
        """
        Submit a request to join a practice.

        Args:
            db: Database session
            user: Requesting user
            practice_id: Target practice
            role: Requested staff role
            message: Optional note for the practice; blank becomes None

        Returns:
            The committed pending request

        Raises:
            HTTPException: 400 for an invalid role, 403 for patient accounts,
                404 for an unknown practice, 409 for a duplicate pending
                request or an existing membership
        """
        if role not in JOIN_REQUEST_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid role. Must be one of: {', '.join(JOIN_REQUEST_ROLES)}"
            )
        if user.role == USER_ROLE_PATIENT:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Patient accounts cannot join a practice as staff"
            )

        practice = PracticeService.get_practice(db, practice_id)

        if PracticeService.get_active_staff(db, user.id, practice_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "You are already a member of this practice", "code": "already_member"}
            )

        join_request = PracticeJoinRequest(
            user_id=user.id,
            practice_id=practice_id,
            requested_role=role,
            message=message.strip() if message and message.strip() else None,
            status=JOIN_REQUEST_STATUS_PENDING,
        )
        db.add(join_request)
        try:
            db.flush()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                logger.info(f"Duplicate join request from user {user.id} for practice {practice_id}")
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={"message": DUPLICATE_JOIN_REQUEST_MESSAGE, "code": DUPLICATE_JOIN_REQUEST_CODE}
                )
            raise

        NotificationService.notify_practice_managers(
            db,
            practice_id,
            notification_type="join_request",
            title="New join request",
            message=f"{user.full_name} requested to join {practice.name} as {role}",
            link="/doctor/practice",
            exclude_user_id=user.id,
        )
        db.commit()
        db.refresh(join_request)
        logger.info(f"Join request {join_request.id} submitted by user {user.id} for practice {practice_id}")
        return join_request

    @staticmethod
    def get_join_request(db: Session, request_id: int) -> PracticeJoinRequest:
        join_request = db.query(PracticeJoinRequest).filter(PracticeJoinRequest.id == request_id).first()
        if not join_request:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Join request not found"
            )
        return join_request

    @staticmethod
    def list_practice_requests(db: Session, practice_id: int, status_filter: Optional[str] = JOIN_REQUEST_STATUS_PENDING) -> List[PracticeJoinRequest]:
        query = db.query(PracticeJoinRequest).filter(PracticeJoinRequest.practice_id == practice_id)
        if status_filter:
            query = query.filter(PracticeJoinRequest.status == status_filter)
        return query.order_by(PracticeJoinRequest.created_at.desc(), PracticeJoinRequest.id.desc()).all()

    @staticmethod
    def list_user_requests(db: Session, user_id: int) -> List[PracticeJoinRequest]:
        return db.query(PracticeJoinRequest).filter(
            PracticeJoinRequest.user_id == user_id
        ).order_by(PracticeJoinRequest.created_at.desc(), PracticeJoinRequest.id.desc()).all()

    @staticmethod
    def _claim(db: Session, join_request: PracticeJoinRequest, new_status: str, reviewer_id: int) -> None:
        """
        Move a request out of pending with a conditional update.

        Only one reviewer can win; a concurrent or repeated review finds no
        pending row and gets a 409 instead of overwriting the decision.
        """
        now = utc_now()
        claimed = db.query(PracticeJoinRequest).filter(
            PracticeJoinRequest.id == join_request.id,
            PracticeJoinRequest.status == JOIN_REQUEST_STATUS_PENDING
        ).update(
            {
                PracticeJoinRequest.status: new_status,
                PracticeJoinRequest.reviewed_by: reviewer_id,
                PracticeJoinRequest.reviewed_at: now,
                PracticeJoinRequest.updated_at: now,
            },
            synchronize_session=False,
        )
        if claimed != 1:
            db.rollback()
            logger.info(f"Join request {join_request.id} was already reviewed")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "This request has already been reviewed", "code": "not_pending"}
            )

    @staticmethod
    def approve(db: Session, join_request: PracticeJoinRequest, reviewer_id: int) -> PracticeJoinRequest:
        """
        Approve a pending request and provision the requester as staff.

        Raises:
            HTTPException: 409 if the request is not pending or the user is already a member
        """
        JoinRequestService._claim(db, join_request, JOIN_REQUEST_STATUS_APPROVED, reviewer_id)

        try:
            PracticeService.provision_staff(
                db,
                user_id=join_request.user_id,
                practice_id=join_request.practice_id,
                role=join_request.requested_role,
                source=STAFF_SOURCE_JOIN_REQUEST,
            )
            NotificationService.create_notification(
                db,
                user_id=join_request.user_id,
                notification_type="join_request_approved",
                title="Join request approved",
                message=f"Your request to join {join_request.practice.name} was approved",
                link="/doctor/practice",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(join_request)
        logger.info(f"Join request {join_request.id} approved by user {reviewer_id}")
        return join_request

    @staticmethod
    def reject(db: Session, join_request: PracticeJoinRequest, reviewer_id: int) -> PracticeJoinRequest:
        """
        Reject a pending request.

        Raises:
            HTTPException: 409 if the request is not pending
        """
        JoinRequestService._claim(db, join_request, JOIN_REQUEST_STATUS_REJECTED, reviewer_id)

        NotificationService.create_notification(
            db,
            user_id=join_request.user_id,
            notification_type="join_request_rejected",
            title="Join request declined",
            message=f"Your request to join {join_request.practice.name} was declined",
        )
        db.commit()
        db.refresh(join_request)
        logger.info(f"Join request {join_request.id} rejected by user {reviewer_id}")
        return join_request

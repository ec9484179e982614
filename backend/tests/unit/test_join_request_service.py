"""
Unit tests for JoinRequestService.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from models import Notification, PracticeJoinRequest, Staff
from services.join_request_service import DUPLICATE_JOIN_REQUEST_CODE, DUPLICATE_JOIN_REQUEST_MESSAGE, JoinRequestService
from tests.utils import add_staff, create_practice_with_admin, create_user
from utils.db_errors import is_unique_violation


class TestSubmit:

    def test_submit_creates_pending_request_and_notifies_admins(self, db_session):
        practice, owner, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com", first_name="Alex", last_name="Applicant")

        join_request = JoinRequestService.submit_join_request(
            db_session, applicant, practice.id, "nurse", "  I have five years of ICU experience. ",
        )

        assert join_request.status == "pending"
        assert join_request.message == "I have five years of ICU experience."
        notification = db_session.query(Notification).filter(Notification.user_id == owner.id).one()
        assert notification.type == "join_request"
        assert "Alex Applicant" in notification.message

    def test_blank_message_is_stored_as_none(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")

        join_request = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "doctor", "   ")

        assert join_request.message is None

    def test_duplicate_pending_request_is_distinguished(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        JoinRequestService.submit_join_request(db_session, applicant, practice.id, "nurse")

        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.submit_join_request(db_session, applicant, practice.id, "doctor")

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail == {
            "message": DUPLICATE_JOIN_REQUEST_MESSAGE,
            "code": DUPLICATE_JOIN_REQUEST_CODE,
        }
        assert db_session.query(PracticeJoinRequest).count() == 1

    def test_can_request_again_after_rejection(self, db_session):
        practice, owner, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        first = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "nurse")
        JoinRequestService.reject(db_session, first, owner.id)

        second = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "nurse")

        assert second.id != first.id
        assert second.status == "pending"

    def test_invalid_role(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.submit_join_request(db_session, applicant, practice.id, "surgeon-general")
        assert exc_info.value.status_code == 400

    def test_patients_cannot_request(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        patient = create_user(db_session, "patient@example.com", role="patient")
        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.submit_join_request(db_session, patient, practice.id, "nurse")
        assert exc_info.value.status_code == 403

    def test_existing_member_conflict(self, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        member = create_user(db_session, "member@example.com")
        add_staff(db_session, member, practice)
        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.submit_join_request(db_session, member, practice.id, "nurse")
        assert exc_info.value.detail["code"] == "already_member"

    def test_unknown_practice(self, db_session):
        applicant = create_user(db_session, "applicant@example.com")
        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.submit_join_request(db_session, applicant, 9999, "nurse")
        assert exc_info.value.status_code == 404


class TestReview:

    def test_approve_provisions_staff(self, db_session):
        practice, owner, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        join_request = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "receptionist")

        approved = JoinRequestService.approve(db_session, join_request, owner.id)

        assert approved.status == "approved"
        assert approved.reviewed_by == owner.id
        staff = db_session.query(Staff).filter(Staff.user_id == applicant.id).one()
        assert (staff.role, staff.source, staff.status) == ("receptionist", "join_request", "active")
        assert db_session.query(Notification).filter(
            Notification.user_id == applicant.id, Notification.type == "join_request_approved"
        ).count() == 1

    def test_reviewed_request_cannot_be_reviewed_again(self, db_session):
        practice, owner, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        join_request = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "nurse")
        JoinRequestService.reject(db_session, join_request, owner.id)

        with pytest.raises(HTTPException) as exc_info:
            JoinRequestService.approve(db_session, join_request, owner.id)
        assert exc_info.value.status_code == 409
        assert db_session.query(Staff).filter(Staff.user_id == applicant.id).count() == 0

    def test_overlapping_reviews_only_one_wins(self, db_session, session_factory):
        practice, owner, _ = create_practice_with_admin(db_session)
        applicant = create_user(db_session, "applicant@example.com")
        request_id = JoinRequestService.submit_join_request(db_session, applicant, practice.id, "nurse").id

        approver_session = session_factory()
        rejecter_session = session_factory()
        try:
            stale_request = JoinRequestService.get_join_request(approver_session, request_id)
            JoinRequestService.reject(
                rejecter_session, JoinRequestService.get_join_request(rejecter_session, request_id), owner.id,
            )

            with pytest.raises(HTTPException) as exc_info:
                JoinRequestService.approve(approver_session, stale_request, owner.id)
        finally:
            approver_session.close()
            rejecter_session.close()

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail["code"] == "not_pending"
        db_session.expire_all()
        assert db_session.get(PracticeJoinRequest, request_id).status == "rejected"
        assert db_session.query(Staff).filter(Staff.user_id == applicant.id).count() == 0
        notification_types = [
            n.type for n in db_session.query(Notification).filter(Notification.user_id == applicant.id)
        ]
        assert notification_types == ["join_request_rejected"]


class TestUniqueViolationDetection:

    def test_postgres_error_code(self):
        orig = MagicMock(pgcode="23505")
        assert is_unique_violation(IntegrityError("INSERT", {}, orig))

    def test_other_integrity_errors(self):
        orig = MagicMock(pgcode="23503", sqlstate=None)
        orig.__str__.return_value = "FOREIGN KEY constraint failed"
        assert not is_unique_violation(IntegrityError("INSERT", {}, orig))

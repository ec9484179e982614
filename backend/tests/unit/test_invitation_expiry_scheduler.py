"""
Unit tests for the invitation expiry scheduler.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from models import PracticeInvitation
from services.invitation_expiry_scheduler import InvitationExpiryScheduler
from tests.utils import create_invitation, create_practice_with_admin


class TestExecuteSweep:

    def test_sweep_expires_stale_invitations(self, db_session, db_context):
        practice, _, _ = create_practice_with_admin(db_session)
        create_invitation(db_session, practice, "old@example.com", token="old", expires_in=timedelta(days=-2))
        create_invitation(db_session, practice, "new@example.com", token="new")

        with patch("services.invitation_expiry_scheduler.get_db_context", db_context):
            expired = InvitationExpiryScheduler(interval_minutes=5).execute_sweep()

        assert expired == 1
        db_session.expire_all()
        old = db_session.query(PracticeInvitation).filter(PracticeInvitation.invitation_token == "old").one()
        assert old.status == "expired"

    def test_sweep_with_nothing_to_do(self, db_context):
        with patch("services.invitation_expiry_scheduler.get_db_context", db_context):
            assert InvitationExpiryScheduler().execute_sweep() == 0

    def test_sweep_errors_are_logged_not_raised(self):
        with patch(
            "services.invitation_expiry_scheduler.get_db_context",
            side_effect=RuntimeError("database unavailable"),
        ):
            assert InvitationExpiryScheduler().execute_sweep() == 0


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_registers_single_job(self):
        scheduler = InvitationExpiryScheduler(interval_minutes=15)
        await scheduler.start_scheduler()
        try:
            await scheduler.start_scheduler()
            jobs = scheduler.scheduler.get_jobs()
            assert [job.id for job in jobs] == ["invitation_expiry_sweep"]
        finally:
            await scheduler.stop_scheduler()
        assert scheduler._is_started is False

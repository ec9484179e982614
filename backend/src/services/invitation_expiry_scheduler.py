"""
Scheduler that expires stale invitations.

Pending staff and patient invitations past their ``expires_at`` are moved to
``expired`` on a fixed interval. Acceptance already rejects expired tokens,
so the sweep only keeps stored statuses accurate for admin listings.
"""

import asyncio
import logging
from datetime import timezone
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore

from core import config
from core.constants import INVITATION_SWEEP_MAX_INSTANCES
from core.database import get_db_context
from services.invitation_service import InvitationService

logger = logging.getLogger(__name__)

# Global singleton instance
_invitation_expiry_scheduler: Optional['InvitationExpiryScheduler'] = None


class InvitationExpiryScheduler:
    """
    Scheduler for the invitation expiry sweep.

    Database sessions are created fresh for each run to avoid stale
    session issues.
    """

    def __init__(self, interval_minutes: Optional[int] = None):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.interval_minutes = interval_minutes or config.INVITATION_SWEEP_INTERVAL_MINUTES
        self._is_started = False

    async def start_scheduler(self) -> None:
        """Start the background sweep. Called during application startup."""
        if self._is_started:
            logger.warning("Invitation expiry scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._run_sweep,
            IntervalTrigger(minutes=self.interval_minutes),
            id="invitation_expiry_sweep",
            name="Expire stale invitations",
            replace_existing=True,
            max_instances=INVITATION_SWEEP_MAX_INSTANCES,
            misfire_grace_time=600,
        )

        self.scheduler.start()
        self._is_started = True
        logger.info(f"Invitation expiry scheduler started (every {self.interval_minutes} minutes)")

    async def stop_scheduler(self) -> None:
        """Stop the background sweep. Called during application shutdown."""
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Invitation expiry scheduler stopped")

    async def _run_sweep(self) -> None:
        # Blocking database work runs off the event loop
        await asyncio.to_thread(self.execute_sweep)

    def execute_sweep(self) -> int:
        """Run one sweep with a fresh session. Returns the number of invitations expired."""
        try:
            with get_db_context() as db:
                expired = InvitationService.expire_stale_invitations(db)
        except Exception as e:
            logger.exception(f"❌ Error during invitation expiry sweep: {e}")
            return 0

        if expired:
            logger.info(f"Expired {expired} stale invitations")
        return expired


def get_invitation_expiry_scheduler() -> InvitationExpiryScheduler:
    """Get the global invitation expiry scheduler instance."""
    global _invitation_expiry_scheduler
    if _invitation_expiry_scheduler is None:
        _invitation_expiry_scheduler = InvitationExpiryScheduler()
    return _invitation_expiry_scheduler


async def start_invitation_expiry_scheduler() -> None:
    """Start the global scheduler. Called during application startup."""
    scheduler = get_invitation_expiry_scheduler()
    await scheduler.start_scheduler()


async def stop_invitation_expiry_scheduler() -> None:
    """Stop the global scheduler. Called during application shutdown."""
    global _invitation_expiry_scheduler
    if _invitation_expiry_scheduler:
        await _invitation_expiry_scheduler.stop_scheduler()

"""
Notification service for the per-user in-app feed.

Other services call ``create_notification`` where the portal used database
triggers; the feed endpoints read and mark notifications for the current user.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.constants import NOTIFICATION_FEED_DEFAULT_LIMIT, NOTIFICATION_FEED_MAX_LIMIT
from models import Notification, Staff

logger = logging.getLogger(__name__)


@dataclass
class NotificationFeed:
    """Newest-first slice of a user's notifications."""
    notifications: List[Notification]

    @property
    def unread_count(self) -> int:
        return sum(1 for notification in self.notifications if not notification.read)


class NotificationService:
    """Service for creating and reading notifications."""

    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> Notification:
        """
        Add a notification to the session.

        The caller owns the transaction; the notification is committed (and
        published to realtime listeners) together with the caller's changes.
        """
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            link=link,
            read=False,
        )
        db.add(notification)
        return notification

    @staticmethod
    def notify_practice_managers(
        db: Session,
        practice_id: int,
        notification_type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        exclude_user_id: Optional[int] = None,
    ) -> int:
        """Notify every active staff member who can manage staff in a practice."""
        managers = db.query(Staff).filter(
            Staff.practice_id == practice_id,
            Staff.status == "active"
        ).all()

        count = 0
        for staff in managers:
            if not staff.can_manage_staff or staff.user_id == exclude_user_id:
                continue
            NotificationService.create_notification(db, staff.user_id, notification_type, title, message, link)
            count += 1
        return count

    @staticmethod
    def get_feed(db: Session, user_id: int, limit: int = NOTIFICATION_FEED_DEFAULT_LIMIT) -> NotificationFeed:
        """Fetch the newest notifications for a user."""
        limit = max(1, min(limit, NOTIFICATION_FEED_MAX_LIMIT))
        notifications = db.query(Notification).filter(
            Notification.user_id == user_id
        ).order_by(
            Notification.created_at.desc(),
            Notification.id.desc()
        ).limit(limit).all()
        return NotificationFeed(notifications=notifications)

    @staticmethod
    def mark_as_read(db: Session, user_id: int, notification_id: int) -> Notification:
        """
        Mark one of the user's notifications as read.

        Marking an already-read notification is a no-op.

        Raises:
            HTTPException: 404 if the notification does not exist or belongs to someone else
        """
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        if not notification.read:
            notification.read = True
            db.commit()
            db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_as_read(db: Session, user_id: int) -> int:
        """Mark every unread notification of the user as read. Returns the number updated."""
        unread = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read == False  # noqa: E712
        ).all()
        for notification in unread:
            notification.read = True
        db.commit()
        return len(unread)

# pyright: reportMissingTypeStubs=false
"""
Notification feed endpoints for the current user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user
from core.constants import NOTIFICATION_FEED_DEFAULT_LIMIT, NOTIFICATION_FEED_MAX_LIMIT
from core.database import get_db
from services.notification_service import NotificationService
from api.responses import NotificationFeedResponse, NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class MarkReadResponse(BaseModel):
    notification: NotificationResponse
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
    unread_count: int = 0


def _feed_response(db: Session, user_id: int, limit: int = NOTIFICATION_FEED_DEFAULT_LIMIT) -> NotificationFeedResponse:
    feed = NotificationService.get_feed(db, user_id, limit)
    return NotificationFeedResponse(
        notifications=[NotificationResponse.model_validate(n) for n in feed.notifications],
        unread_count=feed.unread_count,
    )


@router.get("/notifications", summary="Notification feed")
async def get_notifications(
    limit: int = Query(NOTIFICATION_FEED_DEFAULT_LIMIT, ge=1, le=NOTIFICATION_FEED_MAX_LIMIT),
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> NotificationFeedResponse:
    """Newest notifications, with the unread count among them."""
    return _feed_response(db, current_user.user_id, limit)


@router.post("/notifications/{notification_id}/read", summary="Mark a notification as read")
async def mark_notification_read(
    notification_id: int,
    limit: int = Query(NOTIFICATION_FEED_DEFAULT_LIMIT, ge=1, le=NOTIFICATION_FEED_MAX_LIMIT),
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> MarkReadResponse:
    """
    Mark one notification as read.

    The unread count is recomputed from the database after the write, over
    the same window the client fetched (``limit``), so a failed write never
    changes what the client shows.
    """
    try:
        notification = NotificationService.mark_as_read(db, current_user.user_id, notification_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error marking notification {notification_id} as read: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to mark notification as read"
        )

    feed = _feed_response(db, current_user.user_id, limit)
    return MarkReadResponse(
        notification=NotificationResponse.model_validate(notification),
        unread_count=feed.unread_count,
    )


@router.post("/notifications/read-all", summary="Mark all notifications as read")
async def mark_all_notifications_read(
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> MarkAllReadResponse:
    updated = NotificationService.mark_all_as_read(db, current_user.user_id)
    logger.info(f"Marked {updated} notifications read for user {current_user.user_id}")
    return MarkAllReadResponse(updated=updated)

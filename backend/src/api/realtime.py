# pyright: reportMissingTypeStubs=false
"""
Realtime WebSocket endpoints backed by the change feed.

Browsers cannot set an Authorization header on WebSocket requests, so the
access token is passed as the ``token`` query parameter. Each connection
holds one change-feed subscription, released when the socket closes.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session, sessionmaker

from auth.dependencies import authenticate_token
from core.database import get_session_factory
from models import Doctor
from services.change_feed import EVENT_INSERT, EVENT_UPDATE, ChangeEvent, change_feed
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()


def doctor_status_message(message_type: str, doctor_id: int, availability_status: Optional[str]) -> Dict[str, Any]:
    return {"type": message_type, "doctor_id": doctor_id, "availability_status": availability_status}


def notification_message(change: ChangeEvent) -> Dict[str, Any]:
    """Payload for a newly inserted notification, with the toast to raise."""
    return {
        "type": "notification",
        "notification": change.new,
        "toast": {"title": change.new.get("title"), "description": change.new.get("message")},
    }


async def forward_changes(
    websocket: WebSocket,
    queue: "asyncio.Queue[ChangeEvent]",
    render: Callable[[ChangeEvent], Dict[str, Any]],
) -> None:
    """
    Send queued changes to the client until it disconnects.

    Incoming client messages are read and ignored; reading them is how a
    disconnect is noticed while no changes arrive.
    """
    receiver = asyncio.ensure_future(websocket.receive_text())
    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({receiver, getter}, return_when=asyncio.FIRST_COMPLETED)

            if receiver in done:
                if receiver.exception() is not None:
                    getter.cancel()
                    return
                receiver = asyncio.ensure_future(websocket.receive_text())

            if getter in done:
                await websocket.send_json(render(getter.result()))
            else:
                getter.cancel()
    finally:
        receiver.cancel()


@router.websocket("/realtime/doctors/{doctor_id}/status")
async def doctor_status_stream(
    websocket: WebSocket,
    doctor_id: int,
    token: Optional[str] = Query(None),
    session_factory: sessionmaker[Session] = Depends(get_session_factory)
) -> None:
    """
    Mirror one doctor's availability status.

    Sends the current status on connect and every committed change after.
    Database sessions are closed before the stream goes idle.
    """
    await websocket.accept()
    with session_factory() as db:
        user = authenticate_token(token, db)
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # Subscribe before reading the snapshot so no update falls in between
    async with change_feed.listen("doctors", {"id": doctor_id}, {EVENT_UPDATE}) as queue:
        with session_factory() as db:
            doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
            current_status = doctor.availability_status if doctor else None
        if not doctor:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Doctor not found")
            return

        await websocket.send_json(doctor_status_message("snapshot", doctor_id, current_status))
        logger.debug(f"User {user.user_id} watching status of doctor {doctor_id}")
        try:
            await forward_changes(
                websocket,
                queue,
                lambda change: doctor_status_message("update", doctor_id, change.new.get("availability_status")),
            )
        except WebSocketDisconnect:
            pass
    logger.debug(f"Status stream for doctor {doctor_id} closed")


@router.websocket("/realtime/notifications")
async def notification_stream(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory: sessionmaker[Session] = Depends(get_session_factory)
) -> None:
    """
    Push the caller's newly created notifications.

    The current unread count is sent once the subscription is in place.
    """
    await websocket.accept()
    with session_factory() as db:
        user = authenticate_token(token, db)
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with change_feed.listen("notifications", {"user_id": user.user_id}, {EVENT_INSERT}) as queue:
        with session_factory() as db:
            unread_count = NotificationService.get_feed(db, user.user_id).unread_count
        await websocket.send_json({"type": "unread_count", "unread_count": unread_count})
        try:
            await forward_changes(websocket, queue, notification_message)
        except WebSocketDisconnect:
            pass
    logger.debug(f"Notification stream for user {user.user_id} closed")

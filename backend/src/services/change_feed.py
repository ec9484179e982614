"""
In-process change feed for committed row changes.

SQLAlchemy session events collect inserted and updated rows during flush and
publish them to subscribers once the transaction commits. Rolled back changes
are discarded and never published.

Subscribers register a table, an equality filter on column values and a
handler. ``subscribe`` returns a Subscription whose ``unsubscribe`` releases
it; ``listen`` wraps the same lifecycle as an async context manager yielding
an asyncio.Queue for WebSocket bridges.
"""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from core.database import Base

logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"

_PENDING_KEY = "change_feed_pending"

# Columns each table may publish; rows of unlisted tables are never published
PUBLISHED_COLUMNS: Dict[str, frozenset[str]] = {
    "doctors": frozenset({
        "id", "user_id", "specialty", "license_number", "availability_status", "working_hours",
        "created_at", "updated_at",
    }),
    "notifications": frozenset({"id", "user_id", "type", "title", "message", "link", "read", "created_at"}),
}


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to a single row."""
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], None]


class Subscription:
    """Handle for a registered change listener."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        filters: Dict[str, Any],
        handler: ChangeHandler,
        events: Optional[frozenset[str]],
    ):
        self._feed = feed
        self.table = table
        self.filters = filters
        self.handler = handler
        self.events = events
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if self.events is not None and change.event_type not in self.events:
            return False
        return all(change.new.get(column) == value for column, value in self.filters.items())

    def unsubscribe(self) -> None:
        """Release the subscription. Safe to call more than once."""
        if self.active:
            self.active = False
            self._feed._remove(self)

    def __repr__(self) -> str:
        return f"Subscription(table='{self.table}', filters={self.filters}, active={self.active})"


class ChangeFeed:
    """Registry of change subscriptions with synchronous fan-out."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        filters: Optional[Dict[str, Any]],
        handler: ChangeHandler,
        events: Optional[Iterable[str]] = None,
    ) -> Subscription:
        """
        Register a handler for committed changes to a table.

        Args:
            table: Table name (e.g. "doctors")
            filters: Column/value pairs a row must equal to be delivered
            handler: Callable invoked with each matching ChangeEvent
            events: Restrict to these event types (INSERT/UPDATE); all if None

        Returns:
            Subscription: call ``unsubscribe()`` to stop receiving changes
        """
        subscription = Subscription(
            self,
            table,
            dict(filters or {}),
            handler,
            frozenset(events) if events is not None else None,
        )
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {table} changes with filters {subscription.filters}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: ChangeEvent) -> None:
        """Deliver a change to every matching subscriber; handler errors are logged."""
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]

        for subscription in targets:
            try:
                subscription.handler(change)
            except Exception as e:
                logger.exception(f"Change handler failed for {change.table} {change.event_type}: {e}")

    @asynccontextmanager
    async def listen(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        events: Optional[Iterable[str]] = None,
    ) -> AsyncIterator["asyncio.Queue[ChangeEvent]"]:
        """
        Subscribe for the lifetime of an ``async with`` block.

        Changes are handed to the caller's event loop thread-safely, since
        commits may happen on other threads.
        """
        loop = asyncio.get_running_loop()
        queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()

        def _enqueue(change: ChangeEvent) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, change)

        subscription = self.subscribe(table, filters, _enqueue, events)
        try:
            yield queue
        finally:
            subscription.unsubscribe()


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def row_snapshot(obj: Base) -> Dict[str, Any]:
    """Loaded, publishable column values of a mapped object, without triggering loads."""
    allowed = PUBLISHED_COLUMNS.get(obj.__tablename__, frozenset())
    state = inspect(obj)
    loaded = state.dict
    snapshot: Dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        if attr.key not in allowed or attr.key not in loaded:
            continue
        snapshot[attr.key] = _serialize_value(loaded[attr.key])
    return snapshot


@event.listens_for(Session, "after_flush")
def _collect_changes(session: Session, flush_context: Any) -> None:
    pending: List[ChangeEvent] = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        if isinstance(obj, Base) and obj.__tablename__ in PUBLISHED_COLUMNS:
            pending.append(ChangeEvent(obj.__tablename__, EVENT_INSERT, row_snapshot(obj)))
    for obj in session.dirty:
        if not isinstance(obj, Base) or obj.__tablename__ not in PUBLISHED_COLUMNS:
            continue
        if session.is_modified(obj, include_collections=False):
            pending.append(ChangeEvent(obj.__tablename__, EVENT_UPDATE, row_snapshot(obj)))


@event.listens_for(Session, "after_commit")
def _publish_changes(session: Session) -> None:
    pending: List[ChangeEvent] = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        change_feed.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_changes(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)


# Global change feed instance
change_feed = ChangeFeed()

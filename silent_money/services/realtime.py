"""
In-process change feed and notification inbox view.

Provides:
- ChangeEvent: INSERT/UPDATE/DELETE of a row, as published by services
- ChangeFeed: fan-out of events to asyncio subscribers (SSE streams)
- NotificationInbox: last-write-wins merge of notification events into
  the bounded inbox a client renders

The feed lives in one process; it carries no persistence and no replay.
A subscriber that falls behind loses its oldest buffered events.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, FrozenSet, Iterable, List, Optional, Set
from uuid import UUID

import structlog

logger = structlog.get_logger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def _json_default(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


@dataclass
class ChangeEvent:
    """A row change on a table, scoped to a member when user_id is set."""

    table: str
    type: ChangeType
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    user_id: Optional[UUID] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type.value,
            "new": self.new,
            "old": self.old,
            "occurred_at": self.occurred_at,
        }

    def to_sse(self) -> str:
        """Render as a server-sent event frame."""
        payload = json.dumps(self.to_dict(), default=_json_default)
        return f"event: {self.table}\ndata: {payload}\n\n"


class Subscription:
    """One consumer of the feed with its own bounded queue."""

    def __init__(
        self,
        tables: FrozenSet[str],
        user_id: Optional[UUID],
        maxsize: int,
        types: Optional[FrozenSet[ChangeType]] = None,
    ):
        self.tables = tables
        self.user_id = user_id
        self.types = types
        self.queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def matches(self, event: ChangeEvent) -> bool:
        if event.table not in self.tables:
            return False
        if self.types is not None and event.type not in self.types:
            return False
        if self.user_id is not None and event.user_id != self.user_id:
            return False
        return True

    def offer(self, event: ChangeEvent) -> None:
        """Enqueue without blocking; drop the oldest event when full."""
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None when the timeout elapses first."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class ChangeFeed:
    """Publish/subscribe broker for row changes."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every matching subscriber.

        Returns:
            Number of subscribers that received the event
        """
        delivered = 0
        for subscription in list(self._subscribers):
            if subscription.matches(event):
                subscription.offer(event)
                delivered += 1
        logger.debug(
            "change_event_published",
            table=event.table,
            type=event.type.value,
            delivered=delivered
        )
        return delivered

    @asynccontextmanager
    async def subscribe(
        self,
        tables: Iterable[str],
        user_id: Optional[UUID] = None,
        types: Optional[Iterable[ChangeType]] = None,
    ) -> AsyncIterator[Subscription]:
        """
        Register a subscriber for the lifetime of the context.

        Args:
            tables: Tables whose events are wanted
            user_id: Only events scoped to this member
            types: Only these change types; all when omitted
        """
        subscription = Subscription(
            frozenset(tables),
            user_id,
            self.queue_size,
            types=frozenset(types) if types is not None else None,
        )
        self._subscribers.add(subscription)
        logger.info(
            "change_feed_subscribed",
            tables=sorted(subscription.tables),
            user_id=str(user_id) if user_id else None,
            subscribers=len(self._subscribers)
        )
        try:
            yield subscription
        finally:
            self._subscribers.discard(subscription)
            logger.info(
                "change_feed_unsubscribed",
                dropped=subscription.dropped,
                subscribers=len(self._subscribers)
            )


class NotificationInbox:
    """
    Client-side view of the newest notifications.

    Events are applied in arrival order with last-write-wins semantics:
    INSERT prepends, UPDATE replaces by id, DELETE removes by id. The
    list is kept to `limit` items and the unread count is recomputed
    from what is held.
    """

    def __init__(self, items: Optional[List[Dict[str, Any]]] = None, limit: int = 10):
        self.limit = limit
        self.items: List[Dict[str, Any]] = list(items or [])[:limit]

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self.items if not item.get("is_read"))

    def apply(self, event: ChangeEvent) -> None:
        if event.type is ChangeType.INSERT and event.new is not None:
            new_id = event.new["id"]
            self.items = [event.new] + [item for item in self.items if item["id"] != new_id]
            self.items = self.items[: self.limit]
        elif event.type is ChangeType.UPDATE and event.new is not None:
            new_id = event.new["id"]
            self.items = [event.new if item["id"] == new_id else item for item in self.items]
        elif event.type is ChangeType.DELETE:
            row = event.old or event.new
            if row is not None:
                self.items = [item for item in self.items if item["id"] != row["id"]]

    def apply_all(self, events: Iterable[ChangeEvent]) -> None:
        for event in events:
            self.apply(event)

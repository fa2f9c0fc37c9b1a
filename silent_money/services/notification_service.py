"""
In-app notifications.

Rows are written to the notifications table and every change is
published on the change feed so open inbox streams update live.
"""

import structlog
from typing import Any, Dict, Optional
from uuid import UUID

from silent_money.exceptions import NotFoundError
from silent_money.models.auth import CurrentUser
from silent_money.models.community import (
    NotificationInboxResponse, NotificationResponse, NotificationType,
)
from silent_money.repositories.notification_repo import NotificationRepository
from silent_money.services.realtime import ChangeEvent, ChangeFeed, ChangeType
from shared.metrics import PlatformMetrics

logger = structlog.get_logger(__name__)

NOTIFICATIONS_TABLE = "notifications"


class NotificationService:
    """Creates notifications and serves a member's inbox."""

    def __init__(
        self,
        notification_repo: NotificationRepository,
        feed: ChangeFeed,
        inbox_size: int = 10,
        metrics: Optional[PlatformMetrics] = None,
    ):
        self.notification_repo = notification_repo
        self.feed = feed
        self.inbox_size = inbox_size
        self.metrics = metrics

    def _publish(self, change: ChangeType, row: Dict[str, Any], old: Optional[Dict[str, Any]] = None) -> None:
        self.feed.publish(ChangeEvent(
            table=NOTIFICATIONS_TABLE,
            type=change,
            new=row if change is not ChangeType.DELETE else None,
            old=old,
            user_id=row["user_id"],
        ))

    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM,
        link: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a notification and push it to the recipient's open streams.

        Returns:
            Created notification row
        """
        row = await self.notification_repo.create_notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type.value,
            link=link,
        )
        if self.metrics:
            self.metrics.notifications_sent.labels(type=notification_type.value).inc()
        self._publish(ChangeType.INSERT, row)
        return row

    async def list_inbox(self, user: CurrentUser) -> NotificationInboxResponse:
        """Newest notifications plus the unread count over all rows."""
        rows = await self.notification_repo.list_recent(user.id, limit=self.inbox_size)
        unread = await self.notification_repo.count_unread(user.id)
        return NotificationInboxResponse(
            items=[NotificationResponse(**row) for row in rows],
            unread_count=unread,
        )

    async def mark_read(self, user: CurrentUser, notification_id: UUID) -> NotificationResponse:
        row = await self.notification_repo.mark_read(user.id, notification_id)
        if not row:
            raise NotFoundError("Notification not found")
        self._publish(ChangeType.UPDATE, row)
        return NotificationResponse(**row)

    async def mark_all_read(self, user: CurrentUser) -> int:
        rows = await self.notification_repo.mark_all_read(user.id)
        for row in rows:
            self._publish(ChangeType.UPDATE, row)
        logger.info("notifications_marked_read", user_id=str(user.id), count=len(rows))
        return len(rows)

    async def delete(self, user: CurrentUser, notification_id: UUID) -> None:
        row = await self.notification_repo.delete_notification(user.id, notification_id)
        if not row:
            raise NotFoundError("Notification not found")
        self._publish(ChangeType.DELETE, row, old=row)

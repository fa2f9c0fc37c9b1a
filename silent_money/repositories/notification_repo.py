"""
Notification repository.
"""

import structlog
from typing import Any, Dict, List, Optional
from uuid import UUID

from silent_money.repositories.base import BaseRepository, record_to_dict, records_to_dicts

logger = structlog.get_logger(__name__)

NOTIFICATION_COLUMNS = "id, user_id, title, message, type, link, is_read, created_at"


class NotificationRepository(BaseRepository):
    """Repository for in-app notifications."""

    async def create_notification(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: str = "system",
        link: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO notifications (user_id, title, message, type, link)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {NOTIFICATION_COLUMNS}
                    """,
                    user_id, title, message, notification_type, link
                )
                logger.info(
                    "notification_created",
                    notification_id=str(row["id"]),
                    user_id=str(user_id),
                    type=notification_type
                )
                return dict(row)

        except Exception as e:
            logger.error("notification_create_failed", error=str(e), user_id=str(user_id))
            raise

    async def list_recent(self, user_id: UUID, limit: int = 10) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {NOTIFICATION_COLUMNS} FROM notifications
                    WHERE user_id = $1
                    ORDER BY created_at DESC
                    LIMIT $2
                    """,
                    user_id,
                    limit
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("notification_list_failed", error=str(e), user_id=str(user_id))
            raise

    async def count_unread(self, user_id: UUID) -> int:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND is_read = false",
                    user_id
                )

        except Exception as e:
            logger.error("notification_count_unread_failed", error=str(e), user_id=str(user_id))
            raise

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Optional[Dict[str, Any]]:
        """Mark one of the member's notifications read; None if it is not theirs."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE notifications SET is_read = true
                    WHERE id = $1 AND user_id = $2
                    RETURNING {NOTIFICATION_COLUMNS}
                    """,
                    notification_id,
                    user_id
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("notification_mark_read_failed", error=str(e), notification_id=str(notification_id))
            raise

    async def mark_all_read(self, user_id: UUID) -> List[Dict[str, Any]]:
        """Mark every unread notification read and return the changed rows."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    UPDATE notifications SET is_read = true
                    WHERE user_id = $1 AND is_read = false
                    RETURNING {NOTIFICATION_COLUMNS}
                    """,
                    user_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("notification_mark_all_read_failed", error=str(e), user_id=str(user_id))
            raise

    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> Optional[Dict[str, Any]]:
        """Delete one of the member's notifications and return the deleted row."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    DELETE FROM notifications
                    WHERE id = $1 AND user_id = $2
                    RETURNING {NOTIFICATION_COLUMNS}
                    """,
                    notification_id,
                    user_id
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("notification_delete_failed", error=str(e), notification_id=str(notification_id))
            raise

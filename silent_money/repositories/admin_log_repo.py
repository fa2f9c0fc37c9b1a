"""
Admin log repository for database operations.

Provides async operations for:
- Admin action logs (admin_logs)
- Per-asset lifecycle trail (asset_audit_logs)

JSONB columns are encoded and decoded by the pool's type codec.
"""

import structlog
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.models.audit import AdminLogFilter
from silent_money.repositories.base import BaseRepository, WhereBuilder, records_to_dicts

logger = structlog.get_logger(__name__)


class AdminLogRepository(BaseRepository):
    """Repository for admin action logs and asset audit trails."""

    async def create_admin_log(
        self,
        admin_id: Optional[UUID],
        action_type: str,
        target_type: str,
        target_id: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Record an admin action.

        Args:
            admin_id: Acting admin
            action_type: approve, revision, archive, ban, ...
            target_type: idea, franchise, user, audit, ...
            target_id: Affected row
            details: Free-form JSON context

        Returns:
            Created log row
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO admin_logs (admin_id, action_type, target_type, target_id, details)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id, admin_id, action_type, target_type, target_id, details, created_at
                    """,
                    admin_id,
                    action_type,
                    target_type,
                    target_id,
                    details or {}
                )
                logger.debug(
                    "admin_log_created",
                    log_id=str(row["id"]),
                    action_type=action_type,
                    target_type=target_type
                )
                return dict(row)

        except Exception as e:
            logger.error(
                "admin_log_create_failed",
                error=str(e),
                action_type=action_type,
                target_type=target_type
            )
            raise

    async def list_admin_logs(
        self,
        filter: AdminLogFilter,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        List admin logs newest first with filtering and pagination.

        Returns:
            Tuple of (logs with admin_name, total count)
        """
        try:
            async with self.pool.acquire() as conn:
                where = WhereBuilder()
                if filter.action_type is not None:
                    where.add("l.action_type = {}", filter.action_type)
                if filter.target_type is not None:
                    where.add("l.target_type = {}", filter.target_type.value)
                if filter.admin_id is not None:
                    where.add("l.admin_id = {}", filter.admin_id)
                if filter.target_id is not None:
                    where.add("l.target_id = {}", filter.target_id)

                total = await conn.fetchval(
                    f"SELECT COUNT(*) FROM admin_logs l {where.sql}",
                    *where.params
                )

                limit_param = where.next_placeholder(limit)
                offset_param = where.next_placeholder(offset)
                rows = await conn.fetch(
                    f"""
                    SELECT l.id, l.admin_id, l.action_type, l.target_type, l.target_id,
                           l.details, l.created_at, p.full_name AS admin_name
                    FROM admin_logs l
                    LEFT JOIN profiles p ON p.id = l.admin_id
                    {where.sql}
                    ORDER BY l.created_at DESC
                    LIMIT {limit_param} OFFSET {offset_param}
                    """,
                    *where.params
                )
                return records_to_dicts(rows), total

        except Exception as e:
            logger.error("admin_log_list_failed", error=str(e), filter=filter.model_dump(mode="json"))
            raise

    async def create_asset_event(
        self,
        asset_type: str,
        asset_id: UUID,
        action: str,
        actor_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO asset_audit_logs (asset_id, asset_type, action, actor_id, notes)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id, asset_id, asset_type, action, actor_id, notes, created_at
                    """,
                    asset_id,
                    asset_type,
                    action,
                    actor_id,
                    notes
                )
                return dict(row)

        except Exception as e:
            logger.error("asset_event_create_failed", error=str(e), asset_id=str(asset_id), action=action)
            raise

    async def list_asset_events(self, asset_type: str, asset_id: UUID) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, asset_id, asset_type, action, actor_id, notes, created_at
                    FROM asset_audit_logs
                    WHERE asset_type = $1 AND asset_id = $2
                    ORDER BY created_at DESC
                    """,
                    asset_type,
                    asset_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("asset_event_list_failed", error=str(e), asset_id=str(asset_id))
            raise

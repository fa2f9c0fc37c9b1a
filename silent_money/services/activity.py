"""
Admin activity recording.

Every state-changing admin operation writes an admin_logs row, and
moderation decisions also write an asset audit trail entry. Recording is
best effort: a failed write is logged and never fails the action.
"""

import structlog
from typing import Any, Dict, Optional
from uuid import UUID

from silent_money.models.audit import AdminActionType, AssetAuditAction, TargetType
from silent_money.repositories.admin_log_repo import AdminLogRepository
from shared.metrics import PlatformMetrics

logger = structlog.get_logger(__name__)


class ActivityRecorder:
    """Writes admin logs and asset audit events."""

    def __init__(self, admin_log_repo: AdminLogRepository, metrics: Optional[PlatformMetrics] = None):
        self.admin_log_repo = admin_log_repo
        self.metrics = metrics

    async def log_admin_action(
        self,
        admin_id: Optional[UUID],
        action: AdminActionType,
        target_type: TargetType,
        target_id: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record an admin action.

        Args:
            admin_id: Acting admin
            action: Action performed
            target_type: Kind of row affected
            target_id: Affected row
            details: Extra JSON context
        """
        if self.metrics:
            self.metrics.moderation_actions.labels(action=action.value, target_type=target_type.value).inc()
        try:
            await self.admin_log_repo.create_admin_log(
                admin_id=admin_id,
                action_type=action.value,
                target_type=target_type.value,
                target_id=target_id,
                details=details,
            )
            logger.info(
                "admin_action_logged",
                admin_id=str(admin_id) if admin_id else None,
                action=action.value,
                target_type=target_type.value,
                target_id=str(target_id) if target_id else None,
            )
        except Exception as e:
            logger.error(
                "admin_action_log_failed",
                error=str(e),
                action=action.value,
                target_type=target_type.value,
            )

    async def log_asset_event(
        self,
        asset_type: str,
        asset_id: UUID,
        action: AssetAuditAction,
        actor_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Append to an asset's audit trail."""
        try:
            await self.admin_log_repo.create_asset_event(
                asset_type=asset_type,
                asset_id=asset_id,
                action=action.value,
                actor_id=actor_id,
                notes=notes,
            )
        except Exception as e:
            logger.error(
                "asset_event_log_failed",
                error=str(e),
                asset_id=str(asset_id),
                action=action.value,
            )

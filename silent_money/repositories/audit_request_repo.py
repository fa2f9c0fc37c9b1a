"""
Expert audit request repository.
"""

import structlog
from typing import Any, Dict, List, Optional
from uuid import UUID

from silent_money.repositories.base import BaseRepository, record_to_dict, records_to_dicts

logger = structlog.get_logger(__name__)

AUDIT_REQUEST_SELECT = """
    SELECT r.id, r.user_id, r.brand_name, r.brand_sector, r.website_url,
           r.investment_budget, r.location_target, r.additional_notes, r.status,
           r.admin_feedback, r.report_url, r.created_at, r.updated_at,
           p.full_name AS requester_name
    FROM expert_audit_requests r
    LEFT JOIN profiles p ON p.id = r.user_id
"""


class AuditRequestRepository(BaseRepository):
    """Repository for expert audit requests."""

    async def create_request(self, user_id: UUID, values: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self.transaction() as conn:
                request_id = await conn.fetchval(
                    """
                    INSERT INTO expert_audit_requests (
                        user_id, brand_name, brand_sector, website_url, investment_budget,
                        location_target, additional_notes, status, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, 'pending', NOW(), NOW())
                    RETURNING id
                    """,
                    user_id,
                    values["brand_name"],
                    values.get("brand_sector"),
                    values.get("website_url"),
                    values.get("investment_budget") or "5-10L",
                    values.get("location_target"),
                    values.get("additional_notes"),
                )
                row = await conn.fetchrow(f"{AUDIT_REQUEST_SELECT} WHERE r.id = $1", request_id)
                logger.info("audit_request_created", request_id=str(request_id), brand=values["brand_name"])
                return dict(row)

        except Exception as e:
            logger.error("audit_request_create_failed", error=str(e), user_id=str(user_id))
            raise

    async def get_by_id(self, request_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"{AUDIT_REQUEST_SELECT} WHERE r.id = $1", request_id)
                return record_to_dict(row)

        except Exception as e:
            logger.error("audit_request_get_failed", error=str(e), request_id=str(request_id))
            raise

    async def list_by_user(self, user_id: UUID) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"{AUDIT_REQUEST_SELECT} WHERE r.user_id = $1 ORDER BY r.created_at DESC",
                    user_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("audit_request_list_by_user_failed", error=str(e), user_id=str(user_id))
            raise

    async def list_all(self, status: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                if status:
                    rows = await conn.fetch(
                        f"{AUDIT_REQUEST_SELECT} WHERE r.status = $1 ORDER BY r.created_at DESC LIMIT $2",
                        status,
                        limit
                    )
                else:
                    rows = await conn.fetch(
                        f"{AUDIT_REQUEST_SELECT} ORDER BY r.created_at DESC LIMIT $1",
                        limit
                    )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("audit_request_list_failed", error=str(e))
            raise

    async def update_status(
        self,
        request_id: UUID,
        status: str,
        admin_feedback: Optional[str] = None,
        report_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Set status; feedback and report URL are only overwritten when given.

        Returns:
            Updated request or None if not found
        """
        try:
            async with self.transaction() as conn:
                updated = await conn.fetchval(
                    """
                    UPDATE expert_audit_requests
                    SET status = $1,
                        admin_feedback = COALESCE($2, admin_feedback),
                        report_url = COALESCE($3, report_url),
                        updated_at = NOW()
                    WHERE id = $4
                    RETURNING id
                    """,
                    status,
                    admin_feedback,
                    report_url,
                    request_id
                )
                if not updated:
                    return None
                row = await conn.fetchrow(f"{AUDIT_REQUEST_SELECT} WHERE r.id = $1", request_id)
                logger.info("audit_request_status_updated", request_id=str(request_id), status=status)
                return dict(row)

        except Exception as e:
            logger.error("audit_request_update_failed", error=str(e), request_id=str(request_id))
            raise

    async def count_by_status(self, status: str) -> int:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM expert_audit_requests WHERE status = $1", status
                )

        except Exception as e:
            logger.error("audit_request_count_failed", error=str(e))
            raise

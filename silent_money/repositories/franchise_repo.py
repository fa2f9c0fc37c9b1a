"""
Franchise repository.
"""

import structlog
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.repositories.asset_repo import AssetRepository, PUBLIC_CONDITION
from silent_money.repositories.base import LIKE_ESCAPE, WhereBuilder, contains_pattern, records_to_dicts

logger = structlog.get_logger(__name__)


class FranchiseRepository(AssetRepository):
    """Repository for franchise brands."""

    table = "franchises"
    entity = "franchise"
    title_column = "name"
    search_columns = ("name", "description")
    insertable_fields = frozenset({
        "name", "slug", "category", "description", "investment_min", "investment_max",
        "roi_months_min", "roi_months_max", "space_required_sqft",
        "expected_profit_min", "expected_profit_max", "image_url", "website_url",
        "contact_email", "contact_phone", "author_id",
    })
    select_sql = """
        SELECT a.*, p.full_name AS author_name
        FROM franchises a
        LEFT JOIN profiles p ON p.id = a.author_id
    """

    async def list_public(
        self,
        category: Optional[str] = None,
        max_investment: Optional[Decimal] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        List approved, non-deleted franchises, verified brands first.

        Returns:
            Tuple of (franchises, total count)
        """
        try:
            async with self.pool.acquire() as conn:
                where = WhereBuilder().add_raw(PUBLIC_CONDITION)
                if category:
                    where.add("a.category = {}", category)
                if max_investment is not None:
                    where.add("a.investment_min <= {}", max_investment)
                if search:
                    pattern = contains_pattern(search)
                    where.add(
                        f"(a.name ILIKE {{}} {LIKE_ESCAPE} OR a.description ILIKE {{}} {LIKE_ESCAPE})",
                        pattern,
                        pattern,
                    )

                total = await conn.fetchval(
                    f"SELECT COUNT(*) FROM franchises a {where.sql}",
                    *where.params
                )

                limit_param = where.next_placeholder(limit)
                offset_param = where.next_placeholder(offset)
                rows = await conn.fetch(
                    f"""
                    {self.select_sql}
                    {where.sql}
                    ORDER BY a.is_verified DESC, a.created_at DESC
                    LIMIT {limit_param} OFFSET {offset_param}
                    """,
                    *where.params
                )
                return records_to_dicts(rows), total

        except Exception as e:
            logger.error("franchise_list_failed", error=str(e))
            raise

    async def set_verified(self, franchise_id: UUID, verified: bool) -> Optional[Dict[str, Any]]:
        try:
            return await self._set_and_fetch(franchise_id, "is_verified = $1", verified)
        except Exception as e:
            logger.error("franchise_verify_failed", error=str(e), franchise_id=str(franchise_id))
            raise

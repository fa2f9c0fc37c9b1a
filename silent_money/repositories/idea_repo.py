"""
Income idea repository.

Adds the public listing filters and upvote bookkeeping on top of the
shared moderated-asset operations.
"""

import structlog
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.repositories.asset_repo import AssetRepository, PUBLIC_CONDITION
from silent_money.repositories.base import LIKE_ESCAPE, WhereBuilder, contains_pattern, records_to_dicts

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "created_at": "a.created_at DESC",
    "upvotes_count": "a.upvotes_count DESC, a.created_at DESC",
}


class IdeaRepository(AssetRepository):
    """Repository for income ideas and their votes."""

    table = "income_ideas"
    entity = "idea"
    title_column = "title"
    search_columns = ("title", "short_description")
    insertable_fields = frozenset({
        "title", "slug", "category_id", "short_description", "full_description",
        "reality_check", "initial_investment_min", "initial_investment_max",
        "monthly_income_min", "monthly_income_max", "time_to_first_income_days",
        "effort_level", "risk_level", "success_rate_percentage", "skills_required",
        "image_url", "is_premium", "is_india_specific", "author_id",
    })
    select_sql = """
        SELECT a.*, c.name AS category_name, p.full_name AS author_name
        FROM income_ideas a
        LEFT JOIN categories c ON c.id = a.category_id
        LEFT JOIN profiles p ON p.id = a.author_id
    """

    async def list_public(
        self,
        category: Optional[str] = None,
        min_income: Optional[Decimal] = None,
        search: Optional[str] = None,
        sort: str = "created_at",
        featured_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        List approved, non-deleted ideas.

        Args:
            category: Category slug
            min_income: Lower bound on monthly_income_min
            search: Case-insensitive substring of the title
            sort: created_at or upvotes_count (both descending)
            featured_only: Only featured ideas
            limit: Page size
            offset: Page offset

        Returns:
            Tuple of (ideas, total count)
        """
        try:
            async with self.pool.acquire() as conn:
                where = WhereBuilder().add_raw(PUBLIC_CONDITION)
                if category:
                    where.add("c.slug = {}", category)
                if min_income is not None:
                    where.add("a.monthly_income_min >= {}", min_income)
                if search:
                    where.add(f"a.title ILIKE {{}} {LIKE_ESCAPE}", contains_pattern(search))
                if featured_only:
                    where.add_raw("a.is_featured = true")

                total = await conn.fetchval(
                    f"""
                    SELECT COUNT(*) FROM income_ideas a
                    LEFT JOIN categories c ON c.id = a.category_id
                    {where.sql}
                    """,
                    *where.params
                )

                limit_param = where.next_placeholder(limit)
                offset_param = where.next_placeholder(offset)
                rows = await conn.fetch(
                    f"""
                    {self.select_sql}
                    {where.sql}
                    ORDER BY {SORT_COLUMNS.get(sort, SORT_COLUMNS['created_at'])}
                    LIMIT {limit_param} OFFSET {offset_param}
                    """,
                    *where.params
                )
                return records_to_dicts(rows), total

        except Exception as e:
            logger.error("idea_list_failed", error=str(e))
            raise

    async def has_voted(self, user_id: UUID, idea_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM income_ideas_votes WHERE user_id = $1 AND idea_id = $2)",
                    user_id,
                    idea_id
                )

        except Exception as e:
            logger.error("idea_vote_lookup_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def toggle_vote(self, user_id: UUID, idea_id: UUID) -> Tuple[bool, int]:
        """
        Add the vote if absent, otherwise remove it, adjusting upvotes_count.

        Returns:
            Tuple of (voted after the toggle, new upvotes_count)
        """
        try:
            async with self.transaction() as conn:
                # Lock the idea row so concurrent toggles serialize on the counter
                await conn.execute("SELECT 1 FROM income_ideas WHERE id = $1 FOR UPDATE", idea_id)

                removed = await conn.fetchval(
                    """
                    DELETE FROM income_ideas_votes
                    WHERE user_id = $1 AND idea_id = $2
                    RETURNING id
                    """,
                    user_id,
                    idea_id
                )
                if removed:
                    count = await conn.fetchval(
                        """
                        UPDATE income_ideas SET upvotes_count = GREATEST(upvotes_count - 1, 0)
                        WHERE id = $1
                        RETURNING upvotes_count
                        """,
                        idea_id
                    )
                    voted = False
                else:
                    await conn.execute(
                        "INSERT INTO income_ideas_votes (user_id, idea_id) VALUES ($1, $2)",
                        user_id,
                        idea_id
                    )
                    count = await conn.fetchval(
                        """
                        UPDATE income_ideas SET upvotes_count = upvotes_count + 1
                        WHERE id = $1
                        RETURNING upvotes_count
                        """,
                        idea_id
                    )
                    voted = True

                logger.info("idea_vote_toggled", idea_id=str(idea_id), voted=voted, upvotes=count)
                return voted, count

        except Exception as e:
            logger.error("idea_vote_toggle_failed", error=str(e), idea_id=str(idea_id))
            raise

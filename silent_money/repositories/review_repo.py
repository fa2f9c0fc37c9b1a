"""
Review repository for idea ratings and author replies.
"""

import asyncpg
import structlog
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.exceptions import ConflictError
from silent_money.repositories.base import BaseRepository, record_to_dict, records_to_dicts

logger = structlog.get_logger(__name__)

REVIEW_SELECT = """
    SELECT r.id, r.idea_id, r.user_id, r.rating, r.content, r.author_response,
           r.responded_at, r.created_at,
           p.full_name AS reviewer_name, p.avatar_url AS reviewer_avatar_url,
           i.author_id AS idea_author_id, i.title AS idea_title, i.slug AS idea_slug
    FROM income_idea_reviews r
    JOIN income_ideas i ON i.id = r.idea_id
    LEFT JOIN profiles p ON p.id = r.user_id
"""


class ReviewRepository(BaseRepository):
    """Repository for income idea reviews."""

    async def list_for_idea(self, idea_id: UUID) -> List[Dict[str, Any]]:
        """Reviews of an idea, newest first, with reviewer name and avatar."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"{REVIEW_SELECT} WHERE r.idea_id = $1 ORDER BY r.created_at DESC",
                    idea_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("review_list_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def rating_summary(self, idea_id: UUID) -> Tuple[Optional[float], int]:
        """
        Returns:
            Tuple of (average rating rounded to 1 decimal or None, review count)
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT ROUND(AVG(rating)::numeric, 1) AS average, COUNT(*) AS total
                    FROM income_idea_reviews WHERE idea_id = $1
                    """,
                    idea_id
                )
                average = float(row["average"]) if row["average"] is not None else None
                return average, row["total"]

        except Exception as e:
            logger.error("review_summary_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def get_by_id(self, review_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"{REVIEW_SELECT} WHERE r.id = $1", review_id)
                return record_to_dict(row)

        except Exception as e:
            logger.error("review_get_failed", error=str(e), review_id=str(review_id))
            raise

    async def create_review(self, idea_id: UUID, user_id: UUID, rating: int, content: str) -> Dict[str, Any]:
        """
        Insert a review.

        Raises:
            ConflictError: If this member already reviewed the idea
        """
        try:
            async with self.transaction() as conn:
                review_id = await conn.fetchval(
                    """
                    INSERT INTO income_idea_reviews (idea_id, user_id, rating, content)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id
                    """,
                    idea_id, user_id, rating, content
                )
                row = await conn.fetchrow(f"{REVIEW_SELECT} WHERE r.id = $1", review_id)
                logger.info("review_created", review_id=str(review_id), idea_id=str(idea_id), rating=rating)
                return dict(row)

        except asyncpg.UniqueViolationError:
            logger.warning("review_duplicate", idea_id=str(idea_id), user_id=str(user_id))
            raise ConflictError("You have already reviewed this idea", error_code="SM_409_REVIEW")
        except Exception as e:
            logger.error("review_create_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def set_author_response(self, review_id: UUID, response: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.transaction() as conn:
                updated = await conn.fetchval(
                    """
                    UPDATE income_idea_reviews
                    SET author_response = $1, responded_at = NOW()
                    WHERE id = $2
                    RETURNING id
                    """,
                    response,
                    review_id
                )
                if not updated:
                    return None
                row = await conn.fetchrow(f"{REVIEW_SELECT} WHERE r.id = $1", review_id)
                return dict(row)

        except Exception as e:
            logger.error("review_reply_failed", error=str(e), review_id=str(review_id))
            raise

    async def delete_review(self, review_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM income_idea_reviews WHERE id = $1", review_id)
                deleted = result.split()[-1] != "0"
                if deleted:
                    logger.info("review_deleted", review_id=str(review_id))
                return deleted

        except Exception as e:
            logger.error("review_delete_failed", error=str(e), review_id=str(review_id))
            raise

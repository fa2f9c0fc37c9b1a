"""
Library repository: saved ideas (with progress) and saved franchises.
"""

import structlog
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from silent_money.repositories.base import BaseRepository, record_to_dict, records_to_dicts

logger = structlog.get_logger(__name__)

SAVED_IDEA_COLUMNS = "id, user_id, idea_id, status, notes, created_at, updated_at"
SAVED_FRANCHISE_COLUMNS = "id, user_id, franchise_id, created_at"


class LibraryRepository(BaseRepository):
    """Repository for a member's saved items."""

    async def toggle_saved_idea(self, user_id: UUID, idea_id: UUID) -> bool:
        """
        Save the idea if not saved, otherwise unsave it.

        Returns:
            True if the idea is saved after the call
        """
        try:
            async with self.transaction() as conn:
                removed = await conn.fetchval(
                    "DELETE FROM user_saved_ideas WHERE user_id = $1 AND idea_id = $2 RETURNING id",
                    user_id,
                    idea_id
                )
                if removed:
                    logger.info("idea_unsaved", user_id=str(user_id), idea_id=str(idea_id))
                    return False
                await conn.execute(
                    """
                    INSERT INTO user_saved_ideas (user_id, idea_id, status, created_at, updated_at)
                    VALUES ($1, $2, 'interested', NOW(), NOW())
                    ON CONFLICT (user_id, idea_id) DO NOTHING
                    """,
                    user_id,
                    idea_id
                )
                logger.info("idea_saved", user_id=str(user_id), idea_id=str(idea_id))
                return True

        except Exception as e:
            logger.error("saved_idea_toggle_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def toggle_saved_franchise(self, user_id: UUID, franchise_id: UUID) -> bool:
        try:
            async with self.transaction() as conn:
                removed = await conn.fetchval(
                    """
                    DELETE FROM user_saved_franchises
                    WHERE user_id = $1 AND franchise_id = $2
                    RETURNING id
                    """,
                    user_id,
                    franchise_id
                )
                if removed:
                    logger.info("franchise_unsaved", user_id=str(user_id), franchise_id=str(franchise_id))
                    return False
                await conn.execute(
                    """
                    INSERT INTO user_saved_franchises (user_id, franchise_id)
                    VALUES ($1, $2)
                    ON CONFLICT (user_id, franchise_id) DO NOTHING
                    """,
                    user_id,
                    franchise_id
                )
                logger.info("franchise_saved", user_id=str(user_id), franchise_id=str(franchise_id))
                return True

        except Exception as e:
            logger.error("saved_franchise_toggle_failed", error=str(e), franchise_id=str(franchise_id))
            raise

    async def is_idea_saved(self, user_id: UUID, idea_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM user_saved_ideas WHERE user_id = $1 AND idea_id = $2)",
                    user_id,
                    idea_id
                )

        except Exception as e:
            logger.error("saved_idea_lookup_failed", error=str(e))
            raise

    async def is_franchise_saved(self, user_id: UUID, franchise_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    """
                    SELECT EXISTS(
                        SELECT 1 FROM user_saved_franchises WHERE user_id = $1 AND franchise_id = $2
                    )
                    """,
                    user_id,
                    franchise_id
                )

        except Exception as e:
            logger.error("saved_franchise_lookup_failed", error=str(e))
            raise

    async def update_progress(
        self,
        user_id: UUID,
        idea_id: UUID,
        status: str,
        notes: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """
        Update progress status and notes of a saved idea.

        Returns:
            Updated saved row, or None if the idea is not saved
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE user_saved_ideas
                    SET status = $1, notes = $2, updated_at = NOW()
                    WHERE user_id = $3 AND idea_id = $4
                    RETURNING {SAVED_IDEA_COLUMNS}
                    """,
                    status,
                    notes,
                    user_id,
                    idea_id
                )
                if row:
                    logger.info("idea_progress_updated", idea_id=str(idea_id), status=status)
                return record_to_dict(row)

        except Exception as e:
            logger.error("idea_progress_update_failed", error=str(e), idea_id=str(idea_id))
            raise

    async def list_saved_ideas(self, user_id: UUID) -> List[Dict[str, Any]]:
        """Saved idea rows, most recently saved first."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {SAVED_IDEA_COLUMNS} FROM user_saved_ideas
                    WHERE user_id = $1
                    ORDER BY created_at DESC
                    """,
                    user_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("saved_ideas_list_failed", error=str(e), user_id=str(user_id))
            raise

    async def list_saved_franchises(self, user_id: UUID) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {SAVED_FRANCHISE_COLUMNS} FROM user_saved_franchises
                    WHERE user_id = $1
                    ORDER BY created_at DESC
                    """,
                    user_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("saved_franchises_list_failed", error=str(e), user_id=str(user_id))
            raise

    async def saved_idea_ids(self, user_id: UUID) -> Set[UUID]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT idea_id FROM user_saved_ideas WHERE user_id = $1", user_id)
                return {row["idea_id"] for row in rows}

        except Exception as e:
            logger.error("saved_idea_ids_failed", error=str(e))
            raise

    async def saved_franchise_ids(self, user_id: UUID) -> Set[UUID]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT franchise_id FROM user_saved_franchises WHERE user_id = $1", user_id
                )
                return {row["franchise_id"] for row in rows}

        except Exception as e:
            logger.error("saved_franchise_ids_failed", error=str(e))
            raise

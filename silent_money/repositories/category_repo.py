"""
Category repository for database operations.
"""

import asyncpg
import structlog
from typing import Any, Dict, List, Optional
from uuid import UUID

from silent_money.exceptions import ConflictError
from silent_money.repositories.base import BaseRepository, record_to_dict, records_to_dicts

logger = structlog.get_logger(__name__)

CATEGORY_COLUMNS = "id, name, slug, type, icon, description, display_order, created_at"

UPDATABLE_FIELDS = {"name", "slug", "icon", "description", "display_order"}


class CategoryRepository(BaseRepository):
    """Repository for idea and franchise categories."""

    async def list_categories(self, category_type: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                if category_type:
                    rows = await conn.fetch(
                        f"""
                        SELECT {CATEGORY_COLUMNS} FROM categories
                        WHERE type = $1
                        ORDER BY display_order ASC, name ASC
                        """,
                        category_type
                    )
                else:
                    rows = await conn.fetch(
                        f"""
                        SELECT {CATEGORY_COLUMNS} FROM categories
                        ORDER BY display_order ASC, name ASC
                        """
                    )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("category_list_failed", error=str(e))
            raise

    async def get_by_id(self, category_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {CATEGORY_COLUMNS} FROM categories WHERE id = $1",
                    category_id
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("category_get_failed", error=str(e), category_id=str(category_id))
            raise

    async def create_category(
        self,
        name: str,
        slug: str,
        category_type: str,
        icon: Optional[str] = None,
        description: Optional[str] = None,
        display_order: int = 0,
    ) -> Dict[str, Any]:
        """
        Create a category.

        Raises:
            ConflictError: If name or slug is taken
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO categories (name, slug, type, icon, description, display_order)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    RETURNING {CATEGORY_COLUMNS}
                    """,
                    name, slug, category_type, icon, description, display_order
                )
                logger.info("category_created", category_id=str(row["id"]), slug=slug)
                return dict(row)

        except asyncpg.UniqueViolationError:
            logger.warning("category_already_exists", name=name, slug=slug)
            raise ConflictError(f"Category '{name}' already exists")
        except Exception as e:
            logger.error("category_create_failed", error=str(e), name=name)
            raise

    async def update_category(self, category_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        updates = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
        if not updates:
            return await self.get_by_id(category_id)

        try:
            async with self.pool.acquire() as conn:
                params: List[Any] = []
                assignments = []
                for column, value in updates.items():
                    params.append(value)
                    assignments.append(f"{column} = ${len(params)}")
                params.append(category_id)

                row = await conn.fetchrow(
                    f"""
                    UPDATE categories SET {', '.join(assignments)}
                    WHERE id = ${len(params)}
                    RETURNING {CATEGORY_COLUMNS}
                    """,
                    *params
                )
                return record_to_dict(row)

        except asyncpg.UniqueViolationError:
            raise ConflictError("Another category already uses this name or slug")
        except Exception as e:
            logger.error("category_update_failed", error=str(e), category_id=str(category_id))
            raise

    async def delete_category(self, category_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM categories WHERE id = $1", category_id)
                deleted = result.split()[-1] != "0"
                if deleted:
                    logger.info("category_deleted", category_id=str(category_id))
                return deleted

        except Exception as e:
            logger.error("category_delete_failed", error=str(e), category_id=str(category_id))
            raise

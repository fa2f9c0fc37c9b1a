"""
Shared repository behaviour for moderated assets (ideas and franchises).

Both tables carry the same moderation columns (is_approved, status,
admin_feedback, is_featured, deleted_at), so approval, revision, archive,
admin browsing and search live here; subclasses add table specifics.
"""

import asyncpg
import structlog
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from silent_money.exceptions import ConflictError
from silent_money.repositories.base import (
    LIKE_ESCAPE, BaseRepository, WhereBuilder, contains_pattern, db_value, record_to_dict,
    records_to_dicts,
)

logger = structlog.get_logger(__name__)

PUBLIC_CONDITION = "a.is_approved = true AND a.deleted_at IS NULL"

ADMIN_STATE_CONDITIONS = {
    "pending": "a.is_approved = false AND a.deleted_at IS NULL AND a.status <> 'revision'",
    "approved": "a.is_approved = true AND a.deleted_at IS NULL",
    "revision": "a.status = 'revision' AND a.deleted_at IS NULL",
    "archived": "a.deleted_at IS NOT NULL",
    "all": None,
}


class AssetRepository(BaseRepository):
    """
    Base repository for a moderated asset table.

    Subclasses set:
        table: table name
        entity: name used in log events
        title_column: human readable title column
        search_columns: columns matched by admin and global search
        insertable_fields: columns accepted on insert and update
        select_sql: SELECT ... FROM <table> a [JOIN ...] producing response rows
    """

    table: str = ""
    entity: str = ""
    title_column: str = "title"
    search_columns: Tuple[str, ...] = ()
    insertable_fields: frozenset = frozenset()
    select_sql: str = ""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(self, asset_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"{self.select_sql} WHERE a.id = $1", asset_id)
                return record_to_dict(row)

        except Exception as e:
            logger.error(f"{self.entity}_get_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def get_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"{self.select_sql} WHERE a.slug = $1", slug)
                return record_to_dict(row)

        except Exception as e:
            logger.error(f"{self.entity}_get_by_slug_failed", error=str(e), slug=slug)
            raise

    async def get_many(self, asset_ids: Iterable[UUID]) -> Dict[UUID, Dict[str, Any]]:
        """Fetch several rows keyed by id; unknown ids are absent."""
        ids = list(asset_ids)
        if not ids:
            return {}
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(f"{self.select_sql} WHERE a.id = ANY($1::uuid[])", ids)
                return {row["id"]: dict(row) for row in rows}

        except Exception as e:
            logger.error(f"{self.entity}_get_many_failed", error=str(e))
            raise

    async def next_available_slug(self, base_slug: str, exclude_id: Optional[UUID] = None) -> str:
        """
        Return base_slug, or base_slug-2, -3, ... when taken.

        Args:
            base_slug: Slug derived from the title
            exclude_id: Row allowed to keep its own slug (on edit)
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT slug FROM {self.table}
                    WHERE (slug = $1 OR slug LIKE $1 || '-%')
                      AND ($2::uuid IS NULL OR id <> $2::uuid)
                    """,
                    base_slug,
                    exclude_id
                )
                taken = {row["slug"] for row in rows}
                if base_slug not in taken:
                    return base_slug
                suffix = 2
                while f"{base_slug}-{suffix}" in taken:
                    suffix += 1
                return f"{base_slug}-{suffix}"

        except Exception as e:
            logger.error(f"{self.entity}_slug_lookup_failed", error=str(e), slug=base_slug)
            raise

    async def list_by_author(self, author_id: UUID, public_only: bool = False) -> List[Dict[str, Any]]:
        """Author's non-deleted assets, newest first."""
        try:
            async with self.pool.acquire() as conn:
                condition = PUBLIC_CONDITION if public_only else "a.deleted_at IS NULL"
                rows = await conn.fetch(
                    f"""
                    {self.select_sql}
                    WHERE a.author_id = $1 AND {condition}
                    ORDER BY a.created_at DESC
                    """,
                    author_id
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error(f"{self.entity}_list_by_author_failed", error=str(e), author_id=str(author_id))
            raise

    async def count_by_author(self, author_id: UUID) -> int:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    f"SELECT COUNT(*) FROM {self.table} WHERE author_id = $1 AND deleted_at IS NULL",
                    author_id
                )

        except Exception as e:
            logger.error(f"{self.entity}_count_by_author_failed", error=str(e))
            raise

    async def search_public(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Approved, non-deleted rows whose search columns contain the query."""
        try:
            async with self.pool.acquire() as conn:
                pattern = contains_pattern(query)
                matches = " OR ".join(f"a.{column} ILIKE $1 {LIKE_ESCAPE}" for column in self.search_columns)
                rows = await conn.fetch(
                    f"""
                    {self.select_sql}
                    WHERE {PUBLIC_CONDITION} AND ({matches})
                    ORDER BY a.created_at DESC
                    LIMIT $2
                    """,
                    pattern,
                    limit
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error(f"{self.entity}_search_failed", error=str(e))
            raise

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_asset(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a row from whitelisted column values.

        Raises:
            ConflictError: If the slug is already taken
        """
        columns = [column for column in values if column in self.insertable_fields]
        placeholders = [f"${i}" for i in range(1, len(columns) + 1)]
        try:
            async with self.transaction() as conn:
                asset_id = await conn.fetchval(
                    f"""
                    INSERT INTO {self.table} ({', '.join(columns)}, created_at, updated_at)
                    VALUES ({', '.join(placeholders)}, NOW(), NOW())
                    RETURNING id
                    """,
                    *[db_value(values[column]) for column in columns]
                )
                row = await conn.fetchrow(f"{self.select_sql} WHERE a.id = $1", asset_id)
                logger.info(f"{self.entity}_created", asset_id=str(asset_id), slug=values.get("slug"))
                return dict(row)

        except asyncpg.UniqueViolationError:
            logger.warning(f"{self.entity}_slug_conflict", slug=values.get("slug"))
            raise ConflictError("An entry with this slug already exists")
        except Exception as e:
            logger.error(f"{self.entity}_create_failed", error=str(e))
            raise

    async def update_asset(
        self,
        asset_id: UUID,
        fields: Dict[str, Any],
        resubmit: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """
        Update columns of a row.

        Args:
            asset_id: Row ID
            fields: Column values; unknown columns are ignored
            resubmit: Send the row back to the moderation queue

        Returns:
            Updated row or None if not found
        """
        updates = {k: v for k, v in fields.items() if k in self.insertable_fields}
        params: List[Any] = []
        assignments = []
        for column, value in updates.items():
            params.append(db_value(value))
            assignments.append(f"{column} = ${len(params)}")
        if resubmit:
            assignments.extend([
                "is_approved = false",
                "status = 'pending'",
                "admin_feedback = NULL",
            ])
        assignments.append("updated_at = NOW()")
        params.append(asset_id)

        try:
            async with self.transaction() as conn:
                updated = await conn.fetchval(
                    f"""
                    UPDATE {self.table} SET {', '.join(assignments)}
                    WHERE id = ${len(params)}
                    RETURNING id
                    """,
                    *params
                )
                if not updated:
                    return None
                row = await conn.fetchrow(f"{self.select_sql} WHERE a.id = $1", asset_id)
                logger.info(f"{self.entity}_updated", asset_id=str(asset_id), fields=list(updates))
                return dict(row)

        except asyncpg.UniqueViolationError:
            raise ConflictError("An entry with this slug already exists")
        except Exception as e:
            logger.error(f"{self.entity}_update_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def _set_and_fetch(self, asset_id: UUID, assignments: str, *params: Any) -> Optional[Dict[str, Any]]:
        """Run UPDATE ... SET <assignments> for one row and return the refreshed row."""
        async with self.transaction() as conn:
            updated = await conn.fetchval(
                f"""
                UPDATE {self.table} SET {assignments}, updated_at = NOW()
                WHERE id = ${len(params) + 1}
                RETURNING id
                """,
                *params,
                asset_id
            )
            if not updated:
                return None
            row = await conn.fetchrow(f"{self.select_sql} WHERE a.id = $1", asset_id)
            return dict(row)

    async def set_approved(self, asset_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            return await self._set_and_fetch(
                asset_id,
                "is_approved = true, status = 'approved', admin_feedback = NULL"
            )
        except Exception as e:
            logger.error(f"{self.entity}_approve_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def set_revision(self, asset_id: UUID, feedback: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._set_and_fetch(
                asset_id,
                "is_approved = false, status = 'revision', admin_feedback = $1",
                feedback
            )
        except Exception as e:
            logger.error(f"{self.entity}_revision_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def set_featured(self, asset_id: UUID, featured: bool) -> Optional[Dict[str, Any]]:
        try:
            return await self._set_and_fetch(asset_id, "is_featured = $1", featured)
        except Exception as e:
            logger.error(f"{self.entity}_feature_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def soft_delete(self, asset_id: UUID) -> Optional[Dict[str, Any]]:
        """Set deleted_at; an already archived row keeps its original timestamp."""
        try:
            return await self._set_and_fetch(asset_id, "deleted_at = COALESCE(deleted_at, NOW())")
        except Exception as e:
            logger.error(f"{self.entity}_archive_failed", error=str(e), asset_id=str(asset_id))
            raise

    async def restore(self, asset_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            return await self._set_and_fetch(asset_id, "deleted_at = NULL")
        except Exception as e:
            logger.error(f"{self.entity}_restore_failed", error=str(e), asset_id=str(asset_id))
            raise

    # ------------------------------------------------------------------
    # Admin console
    # ------------------------------------------------------------------

    async def list_for_admin(
        self,
        state: str = "pending",
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Browse rows by moderation state.

        Returns:
            Tuple of (rows, total count)
        """
        try:
            async with self.pool.acquire() as conn:
                where = WhereBuilder()
                condition = ADMIN_STATE_CONDITIONS[state]
                if condition:
                    where.add_raw(condition)
                if search:
                    where.add(f"a.{self.title_column} ILIKE {{}} {LIKE_ESCAPE}", contains_pattern(search))

                total = await conn.fetchval(
                    f"SELECT COUNT(*) FROM {self.table} a {where.sql}",
                    *where.params
                )
                order = "a.updated_at DESC" if state == "approved" else "a.created_at DESC"
                limit_param = where.next_placeholder(limit)
                offset_param = where.next_placeholder(offset)
                rows = await conn.fetch(
                    f"""
                    {self.select_sql}
                    {where.sql}
                    ORDER BY {order}
                    LIMIT {limit_param} OFFSET {offset_param}
                    """,
                    *where.params
                )
                return records_to_dicts(rows), total

        except Exception as e:
            logger.error(f"{self.entity}_admin_list_failed", error=str(e), state=state)
            raise

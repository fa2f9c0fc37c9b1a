"""
Profile repository for database operations.

Provides async CRUD operations for member profiles and credentials
using asyncpg with PostgreSQL.
"""

import asyncpg
import structlog
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.exceptions import ConflictError
from silent_money.repositories.base import (
    LIKE_ESCAPE, BaseRepository, WhereBuilder, contains_pattern, record_to_dict, records_to_dicts,
)

logger = structlog.get_logger(__name__)

PROFILE_COLUMNS = """
    id, email, password_hash, full_name, bio, avatar_url, role,
    is_admin, is_banned, created_at, updated_at
"""

UPDATABLE_FIELDS = {"full_name", "bio", "avatar_url"}


class ProfileRepository(BaseRepository):
    """Repository for profile database operations."""

    async def create_profile(
        self,
        email: str,
        password_hash: str,
        full_name: Optional[str],
        role: str = "user",
    ) -> Dict[str, Any]:
        """
        Create a new profile.

        Args:
            email: Login e-mail (stored lowercase)
            password_hash: bcrypt hash
            full_name: Display name
            role: Initial role

        Returns:
            Created profile row

        Raises:
            ConflictError: If the e-mail is already registered
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO profiles (email, password_hash, full_name, role, is_admin, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, NOW(), NOW())
                    RETURNING {PROFILE_COLUMNS}
                    """,
                    email.lower(),
                    password_hash,
                    full_name,
                    role,
                    role != "user",
                )
                logger.info("profile_created", user_id=str(row["id"]))
                return dict(row)

        except asyncpg.UniqueViolationError:
            logger.warning("email_already_registered", email=email)
            raise ConflictError("An account with this e-mail already exists")
        except Exception as e:
            logger.error("profile_create_failed", error=str(e))
            raise

    async def get_by_id(self, user_id: UUID) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = $1",
                    user_id
                )
                if not row:
                    logger.debug("profile_not_found", user_id=str(user_id))
                return record_to_dict(row)

        except Exception as e:
            logger.error("profile_get_by_id_failed", error=str(e), user_id=str(user_id))
            raise

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE email = $1",
                    email.lower()
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("profile_get_by_email_failed", error=str(e))
            raise

    async def update_profile(self, user_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update editable profile fields.

        Args:
            user_id: Profile ID
            fields: Subset of full_name, bio, avatar_url

        Returns:
            Updated profile or None if not found
        """
        updates = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not updates:
            return await self.get_by_id(user_id)

        try:
            async with self.pool.acquire() as conn:
                params: List[Any] = []
                assignments = []
                for column, value in updates.items():
                    params.append(value)
                    assignments.append(f"{column} = ${len(params)}")
                params.append(user_id)

                row = await conn.fetchrow(
                    f"""
                    UPDATE profiles
                    SET {', '.join(assignments)}, updated_at = NOW()
                    WHERE id = ${len(params)}
                    RETURNING {PROFILE_COLUMNS}
                    """,
                    *params
                )
                if row:
                    logger.info("profile_updated", user_id=str(user_id), fields=list(updates))
                return record_to_dict(row)

        except Exception as e:
            logger.error("profile_update_failed", error=str(e), user_id=str(user_id))
            raise

    async def update_password(self, user_id: UUID, password_hash: str) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE profiles SET password_hash = $1, updated_at = NOW() WHERE id = $2",
                    password_hash,
                    user_id
                )
                updated = result.split()[-1] != "0"
                if updated:
                    logger.info("profile_password_updated", user_id=str(user_id))
                return updated

        except Exception as e:
            logger.error("profile_password_update_failed", error=str(e), user_id=str(user_id))
            raise

    async def set_banned(self, user_id: UUID, banned: bool) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE profiles SET is_banned = $1, updated_at = NOW()
                    WHERE id = $2
                    RETURNING {PROFILE_COLUMNS}
                    """,
                    banned,
                    user_id
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("profile_set_banned_failed", error=str(e), user_id=str(user_id))
            raise

    async def set_admin(self, user_id: UUID, is_admin: bool, role: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE profiles SET is_admin = $1, role = $2, updated_at = NOW()
                    WHERE id = $3
                    RETURNING {PROFILE_COLUMNS}
                    """,
                    is_admin,
                    role,
                    user_id
                )
                return record_to_dict(row)

        except Exception as e:
            logger.error("profile_set_admin_failed", error=str(e), user_id=str(user_id))
            raise

    async def list_profiles(
        self,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        List profiles newest first, optionally matching name or e-mail.

        Returns:
            Tuple of (profiles, total count)
        """
        try:
            async with self.pool.acquire() as conn:
                where = WhereBuilder()
                if search:
                    pattern = contains_pattern(search)
                    where.add(
                        f"(full_name ILIKE {{}} {LIKE_ESCAPE} OR email ILIKE {{}} {LIKE_ESCAPE})",
                        pattern,
                        pattern,
                    )

                total = await conn.fetchval(
                    f"SELECT COUNT(*) FROM profiles {where.sql}",
                    *where.params
                )

                limit_param = where.next_placeholder(limit)
                offset_param = where.next_placeholder(offset)
                rows = await conn.fetch(
                    f"""
                    SELECT {PROFILE_COLUMNS}
                    FROM profiles
                    {where.sql}
                    ORDER BY created_at DESC
                    LIMIT {limit_param} OFFSET {offset_param}
                    """,
                    *where.params
                )
                return records_to_dicts(rows), total

        except Exception as e:
            logger.error("profile_list_failed", error=str(e))
            raise

    async def list_all(self) -> List[Dict[str, Any]]:
        """All profiles, oldest first, for CSV export."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles ORDER BY created_at ASC"
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("profile_list_all_failed", error=str(e))
            raise

    async def count_profiles(self) -> int:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT COUNT(*) FROM profiles")

        except Exception as e:
            logger.error("profile_count_failed", error=str(e))
            raise

    async def daily_signups(self, days: int) -> List[Tuple[date, int]]:
        """
        New profiles per day for the last `days` days, zero-filled.

        Returns:
            List of (day, count) oldest first
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT d::date AS day, COUNT(p.id) AS new_users
                    FROM generate_series(
                        CURRENT_DATE - ($1::int - 1), CURRENT_DATE, INTERVAL '1 day'
                    ) AS d
                    LEFT JOIN profiles p ON p.created_at::date = d::date
                    GROUP BY d
                    ORDER BY d
                    """,
                    days
                )
                return [(row["day"], row["new_users"]) for row in rows]

        except Exception as e:
            logger.error("profile_daily_signups_failed", error=str(e))
            raise

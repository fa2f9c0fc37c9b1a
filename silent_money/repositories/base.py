"""
Shared plumbing for asyncpg repositories.

Provides:
- Transaction context manager over the connection pool
- Positional parameter builder for dynamic WHERE clauses
- Row to dict conversion
"""

import asyncpg
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, List, Optional


def db_value(value: Any) -> Any:
    """Unwrap enums to their stored value; everything else passes through."""
    if isinstance(value, Enum):
        return value.value
    return value


def record_to_dict(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    """Convert a record to a plain dict, keeping None as None."""
    if row is None:
        return None
    return dict(row)


def records_to_dicts(rows: List[asyncpg.Record]) -> List[Dict[str, Any]]:
    return [dict(row) for row in rows]


LIKE_ESCAPE = "ESCAPE '\\'"


def contains_pattern(text: str) -> str:
    """ILIKE pattern matching `text` anywhere, with its own % and _ taken literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class WhereBuilder:
    """
    Collects WHERE conditions with numbered $n placeholders.

    Example:
        where = WhereBuilder()
        where.add("user_id = {}", user_id)
        where.add_raw("deleted_at IS NULL")
        rows = await conn.fetch(f"SELECT ... {where.sql}", *where.params)
    """

    def __init__(self) -> None:
        self.clauses: List[str] = []
        self.params: List[Any] = []

    def next_placeholder(self, value: Any) -> str:
        """Register a parameter and return its $n placeholder."""
        self.params.append(value)
        return f"${len(self.params)}"

    def add(self, template: str, *values: Any) -> "WhereBuilder":
        """Add a condition; each {} in the template receives one value."""
        placeholders = [self.next_placeholder(value) for value in values]
        self.clauses.append(template.format(*placeholders))
        return self

    def add_raw(self, clause: str) -> "WhereBuilder":
        self.clauses.append(clause)
        return self

    @property
    def sql(self) -> str:
        return f"WHERE {' AND '.join(self.clauses)}" if self.clauses else ""


class BaseRepository:
    """Base for repositories sharing one asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool):
        """
        Initialize repository.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    @asynccontextmanager
    async def transaction(self):
        """
        Context manager for database transactions.

        Yields:
            asyncpg.Connection: Database connection
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

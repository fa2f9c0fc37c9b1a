"""
Database schema management.

The SQLAlchemy models under silent_money.models are the source of truth
for the table layout; repositories talk to the same tables through asyncpg.

Usage:
    python -m silent_money.db            # create missing tables
    python -m silent_money.db --drop     # drop and recreate (development only)
"""

import argparse
from typing import Optional

import structlog
from sqlalchemy import create_engine

from silent_money.config import get_settings
from silent_money.models import Base

logger = structlog.get_logger(__name__)


def create_schema(database_url: Optional[str] = None, drop_first: bool = False) -> None:
    """
    Create all tables that do not exist yet.

    Args:
        database_url: Sync SQLAlchemy URL; defaults to settings.database_url_sync
        drop_first: Drop every table before creating
    """
    url = database_url or get_settings().database_url_sync
    engine = create_engine(url)
    try:
        with engine.begin() as conn:
            if drop_first:
                Base.metadata.drop_all(conn)
                logger.warning("schema_dropped")
            Base.metadata.create_all(conn)
        logger.info("schema_created", tables=sorted(Base.metadata.tables))
    finally:
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the Silent Money schema")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--drop", action="store_true", help="Drop tables first")
    args = parser.parse_args()

    settings = get_settings()
    if args.drop and settings.is_production:
        parser.error("--drop is refused in production")

    create_schema(args.database_url, drop_first=args.drop)


if __name__ == "__main__":
    main()

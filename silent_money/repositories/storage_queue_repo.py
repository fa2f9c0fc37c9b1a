"""
Storage cleanup queue repository.

Objects land here when an asset's image is replaced or the asset is
archived; an admin purge deletes them from the bucket.
"""

import structlog
from typing import Any, Dict, List
from uuid import UUID

from silent_money.repositories.base import BaseRepository, records_to_dicts

logger = structlog.get_logger(__name__)


class StorageQueueRepository(BaseRepository):
    """Repository for storage_cleanup_queue."""

    async def enqueue(self, bucket_name: str, file_path: str) -> Dict[str, Any]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO storage_cleanup_queue (bucket_name, file_path)
                    VALUES ($1, $2)
                    RETURNING id, bucket_name, file_path, created_at
                    """,
                    bucket_name,
                    file_path
                )
                logger.info("storage_cleanup_enqueued", bucket=bucket_name, path=file_path)
                return dict(row)

        except Exception as e:
            logger.error("storage_cleanup_enqueue_failed", error=str(e), path=file_path)
            raise

    async def list_pending(self, limit: int = 500) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, bucket_name, file_path, created_at
                    FROM storage_cleanup_queue
                    ORDER BY created_at ASC
                    LIMIT $1
                    """,
                    limit
                )
                return records_to_dicts(rows)

        except Exception as e:
            logger.error("storage_cleanup_list_failed", error=str(e))
            raise

    async def remove(self, item_id: UUID) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM storage_cleanup_queue WHERE id = $1", item_id)
                return result.split()[-1] != "0"

        except Exception as e:
            logger.error("storage_cleanup_remove_failed", error=str(e), item_id=str(item_id))
            raise

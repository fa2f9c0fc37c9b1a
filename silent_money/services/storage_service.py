"""
Image uploads and storage cleanup.

Uploads are validated (extension and size) and stored under
<folder>/<uuid4 hex>.<ext> in the public asset bucket. Images that stop
being referenced are queued in storage_cleanup_queue and removed by an
admin purge.
"""

import re
import structlog
from typing import List, Optional
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError

from silent_money.config import Settings, get_settings
from silent_money.exceptions import ExternalServiceError, InvalidStateError, SilentMoneyError
from silent_money.models.audit import CleanupItem, PurgeResult, UploadResponse
from silent_money.repositories.storage_queue_repo import StorageQueueRepository
from shared.metrics import PlatformMetrics
from shared.storage import ObjectStore
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

FOLDER_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,62}$")


def file_extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


class StorageService:
    """Validates uploads and maintains the cleanup queue."""

    def __init__(
        self,
        store: ObjectStore,
        queue_repo: StorageQueueRepository,
        settings: Optional[Settings] = None,
        metrics: Optional[PlatformMetrics] = None,
    ):
        self.store = store
        self.queue_repo = queue_repo
        self.settings = settings or get_settings()
        self.metrics = metrics
        self.bucket = self.settings.storage_bucket

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.uploads.labels(outcome=outcome).inc()

    @trace_function("storage.upload_image", expected=(SilentMoneyError,))
    async def upload_image(
        self,
        folder: str,
        filename: Optional[str],
        data: bytes,
        content_type: Optional[str] = None,
    ) -> UploadResponse:
        """
        Store an image and return its path and public URL.

        Raises:
            InvalidStateError: Bad folder, extension, empty or oversized file
            ExternalServiceError: The object store rejected the upload
        """
        if not FOLDER_PATTERN.match(folder):
            self._record("rejected")
            raise InvalidStateError("Invalid upload folder")

        extension = file_extension(filename)
        if extension not in self.settings.storage_allowed_extensions:
            self._record("rejected")
            allowed = ", ".join(self.settings.storage_allowed_extensions)
            raise InvalidStateError(f"Unsupported file type. Allowed: {allowed}")

        if not data:
            self._record("rejected")
            raise InvalidStateError("Uploaded file is empty")

        if len(data) > self.settings.storage_max_upload_bytes:
            self._record("rejected")
            limit_mb = self.settings.storage_max_upload_bytes / (1024 * 1024)
            raise InvalidStateError(f"File is too large. Maximum size is {limit_mb:g} MB")

        path = f"{folder}/{uuid4().hex}.{extension}"
        try:
            await self.store.put_object(self.bucket, path, data, content_type=content_type)
        except (ClientError, BotoCoreError) as e:
            self._record("failed")
            logger.error("image_upload_failed", path=path, error=str(e))
            raise ExternalServiceError("Image upload failed. Please try again.")

        self._record("stored")
        if self.metrics:
            self.metrics.upload_size.observe(len(data))
        logger.info("image_uploaded", path=path, size_bytes=len(data))
        return UploadResponse(path=path, public_url=self.store.public_url(path))

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Object path of a URL served from the asset bucket, else None."""
        if not url:
            return None
        prefix = f"{self.store.public_base_url}/"
        if self.store.public_base_url and url.startswith(prefix):
            return url[len(prefix):] or None
        return None

    async def enqueue_cleanup(self, url: Optional[str]) -> bool:
        """
        Queue the object behind an image URL for deletion.

        External URLs are ignored.

        Returns:
            True if a row was queued
        """
        path = self.path_from_url(url)
        if not path:
            return False
        await self.queue_repo.enqueue(self.bucket, path)
        return True

    async def list_cleanup_queue(self) -> List[CleanupItem]:
        rows = await self.queue_repo.list_pending()
        return [CleanupItem(**row) for row in rows]

    @trace_function("storage.purge", expected=(SilentMoneyError,))
    async def purge_cleanup_queue(self) -> PurgeResult:
        """
        Delete every queued object and drop its queue row.

        Deleting an object that no longer exists succeeds, so running the
        purge twice is harmless. Failed deletions stay queued.
        """
        purged = 0
        failed = 0
        for item in await self.queue_repo.list_pending():
            try:
                await self.store.delete_object(item["bucket_name"], item["file_path"])
            except (ClientError, BotoCoreError) as e:
                failed += 1
                logger.error("storage_purge_item_failed", path=item["file_path"], error=str(e))
                if self.metrics:
                    self.metrics.storage_purged.labels(outcome="failed").inc()
                continue
            await self.queue_repo.remove(item["id"])
            purged += 1
            if self.metrics:
                self.metrics.storage_purged.labels(outcome="purged").inc()

        logger.info("storage_purge_completed", purged=purged, failed=failed)
        return PurgeResult(purged=purged, failed=failed)

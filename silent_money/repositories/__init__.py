"""asyncpg repositories, one per aggregate."""

from silent_money.repositories.profile_repo import ProfileRepository
from silent_money.repositories.category_repo import CategoryRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.review_repo import ReviewRepository
from silent_money.repositories.library_repo import LibraryRepository
from silent_money.repositories.audit_request_repo import AuditRequestRepository
from silent_money.repositories.notification_repo import NotificationRepository
from silent_money.repositories.admin_log_repo import AdminLogRepository
from silent_money.repositories.storage_queue_repo import StorageQueueRepository

__all__ = [
    "ProfileRepository",
    "CategoryRepository",
    "IdeaRepository",
    "FranchiseRepository",
    "ReviewRepository",
    "LibraryRepository",
    "AuditRequestRepository",
    "NotificationRepository",
    "AdminLogRepository",
    "StorageQueueRepository",
]

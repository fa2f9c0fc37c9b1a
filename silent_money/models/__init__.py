"""Table definitions and API schemas."""

from silent_money.models.auth import Base, Profile
from silent_money.models.catalog import Category, IncomeIdea, Franchise, IdeaVote
from silent_money.models.community import (
    IdeaReview,
    SavedIdea,
    SavedFranchise,
    ExpertAuditRequest,
    Notification,
)
from silent_money.models.audit import AdminLog, AssetAuditLog, StorageCleanupItem

__all__ = [
    "Base",
    "Profile",
    "Category",
    "IncomeIdea",
    "Franchise",
    "IdeaVote",
    "IdeaReview",
    "SavedIdea",
    "SavedFranchise",
    "ExpertAuditRequest",
    "Notification",
    "AdminLog",
    "AssetAuditLog",
    "StorageCleanupItem",
]

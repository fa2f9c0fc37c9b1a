"""
Administrative audit models.

Provides both SQLAlchemy ORM models and Pydantic schemas for:
- Admin action logs (who did what to which asset or user)
- Per-asset audit trail (authorization, revision, decommission)
- Storage cleanup queue
- Admin dashboard snapshot and bulk actions
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4
from enum import Enum

from sqlalchemy import String, DateTime, Text, Index, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from pydantic import BaseModel, Field, field_validator

from silent_money.models.auth import Base
from silent_money.models.catalog import AssetType, FranchiseResponse, IdeaResponse
from silent_money.models.community import AuditRequestResponse


# ============================================================================
# Enums
# ============================================================================


class AdminActionType(str, Enum):
    """Action types written to admin_logs."""
    APPROVE = "approve"
    REVISION = "revision"
    ARCHIVE = "archive"
    RESTORE = "restore"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    VERIFY = "verify"
    UNVERIFY = "unverify"
    BAN = "ban"
    UNBAN = "unban"
    TOGGLE_ADMIN = "toggle_admin"
    AUDIT_STATUS_UPDATE = "audit_status_update"
    CATEGORY_CREATE = "category_create"
    CATEGORY_UPDATE = "category_update"
    CATEGORY_DELETE = "category_delete"
    STORAGE_PURGE = "storage_purge"
    USERS_EXPORT = "users_export"


class TargetType(str, Enum):
    IDEA = "idea"
    FRANCHISE = "franchise"
    USER = "user"
    AUDIT = "audit"
    CATEGORY = "category"
    STORAGE = "storage"


class AssetAuditAction(str, Enum):
    """Lifecycle events shown on an asset's audit trail."""
    AUTHORIZATION = "AUTHORIZATION"
    REVISION_REQUEST = "REVISION_REQUEST"
    DECOMMISSION = "DECOMMISSION"
    STATUS_CHANGE = "STATUS_CHANGE"


class AssetState(str, Enum):
    """Filter of the admin asset browser."""
    PENDING = "pending"
    APPROVED = "approved"
    REVISION = "revision"
    ARCHIVED = "archived"
    ALL = "all"


class BulkAction(str, Enum):
    APPROVE = "approve"
    ARCHIVE = "archive"


# ============================================================================
# SQLAlchemy Models
# ============================================================================


class AdminLog(Base):
    """Admin action log entry."""

    __tablename__ = "admin_logs"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    admin_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True, comment="Admin who performed the action"
    )
    action_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="approve, revision, archive, ban, ..."
    )
    target_type: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="idea, franchise, user, audit, ..."
    )
    target_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), nullable=True,
        comment="Not a foreign key so logs survive deletion of the target"
    )
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_admin_logs_created_at", "created_at"),
        Index("idx_admin_logs_action_type", "action_type"),
        Index("idx_admin_logs_target", "target_type", "target_id"),
        Index("idx_admin_logs_admin", "admin_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AdminLog(id={self.id}, action_type='{self.action_type}', "
            f"target_type='{self.target_type}', target_id={self.target_id})>"
        )


class AssetAuditLog(Base):
    """Lifecycle event of a single idea or franchise."""

    __tablename__ = "asset_audit_logs"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    asset_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(20), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_asset_audit_logs_asset", "asset_type", "asset_id", "created_at"),
    )


class StorageCleanupItem(Base):
    """Object awaiting deletion from the asset bucket."""

    __tablename__ = "storage_cleanup_queue"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    bucket_name: Mapped[str] = mapped_column(String(100), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


# ============================================================================
# Pydantic Request Models
# ============================================================================


class RevisionRequest(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=4000)

    @field_validator("feedback")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Feedback is required for a revision request")
        return v


class FeatureRequest(BaseModel):
    featured: bool


class VerifyRequest(BaseModel):
    verified: bool


class BulkItem(BaseModel):
    asset_type: AssetType
    id: UUID


class BulkActionRequest(BaseModel):
    action: BulkAction
    items: List[BulkItem] = Field(..., min_length=1, max_length=200)


class AdminLogFilter(BaseModel):
    """Filter parameters for admin log queries."""

    action_type: Optional[str] = None
    target_type: Optional[TargetType] = None
    admin_id: Optional[UUID] = None
    target_id: Optional[UUID] = None


# ============================================================================
# Pydantic Response Models
# ============================================================================


class AdminLogEntry(BaseModel):
    id: UUID
    admin_id: Optional[UUID] = None
    admin_name: Optional[str] = None
    action_type: str
    target_type: str
    target_id: Optional[UUID] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime


class AdminLogListResponse(BaseModel):
    items: List[AdminLogEntry]
    total: int
    limit: int
    offset: int


class AssetAuditEntry(BaseModel):
    id: UUID
    asset_id: UUID
    asset_type: str
    action: AssetAuditAction
    actor_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime


class CleanupItem(BaseModel):
    id: UUID
    bucket_name: str
    file_path: str
    created_at: datetime


class PurgeResult(BaseModel):
    purged: int
    failed: int


class BulkFailure(BaseModel):
    id: UUID
    error: str


class BulkActionResult(BaseModel):
    action: BulkAction
    succeeded: List[UUID] = Field(default_factory=list)
    failed: List[BulkFailure] = Field(default_factory=list)


class DashboardStats(BaseModel):
    pending_ideas: int = 0
    pending_franchises: int = 0
    pending_audits: int = 0
    total_users: int = 0
    approved_ideas: int = 0
    approved_franchises: int = 0


class GrowthPoint(BaseModel):
    day: date
    new_users: int


class PendingAssets(BaseModel):
    ideas: List[IdeaResponse] = Field(default_factory=list)
    franchises: List[FranchiseResponse] = Field(default_factory=list)


class AdminDashboardResponse(BaseModel):
    """Single snapshot backing the moderation console."""

    stats: DashboardStats
    pending: PendingAssets
    history: PendingAssets
    audits: List[AuditRequestResponse] = Field(default_factory=list)
    growth: List[GrowthPoint] = Field(default_factory=list)


class AdminAssetListResponse(BaseModel):
    asset_type: AssetType
    ideas: List[IdeaResponse] = Field(default_factory=list)
    franchises: List[FranchiseResponse] = Field(default_factory=list)
    total: int
    limit: int
    offset: int


class AdminUserEntry(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: str
    is_admin: bool
    is_banned: bool
    created_at: datetime


class AdminUserListResponse(BaseModel):
    items: List[AdminUserEntry]
    total: int
    limit: int
    offset: int


class UploadResponse(BaseModel):
    path: str
    public_url: str

"""
Community models: reviews, saved items, expert audit requests, notifications.

Provides both SQLAlchemy ORM models and Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4
from enum import Enum

from sqlalchemy import (
    String, Boolean, DateTime, SmallInteger, Text, ForeignKey, Index,
    UniqueConstraint, CheckConstraint, text,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column
from pydantic import BaseModel, EmailStr, Field, field_validator

from silent_money.models.auth import Base
from silent_money.models.catalog import FranchiseResponse, IdeaResponse


# ============================================================================
# Enums
# ============================================================================


class ProgressStatus(str, Enum):
    """Where a member stands with a saved idea."""
    INTERESTED = "interested"
    RESEARCHING = "researching"
    STARTED = "started"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


class AuditRequestStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in-review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    SYSTEM = "system"
    APPROVAL = "approval"
    REVIEW = "review"


# ============================================================================
# SQLAlchemy Models
# ============================================================================


class IdeaReview(Base):
    """Star rating and review of an idea; one per member per idea."""

    __tablename__ = "income_idea_reviews"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    idea_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("income_ideas.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "idea_id", name="uq_income_idea_reviews_user_idea"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_income_idea_reviews_rating"),
        Index("idx_income_idea_reviews_idea", "idea_id", "created_at"),
    )


class SavedIdea(Base):
    """An idea bookmarked by a member, with progress tracking."""

    __tablename__ = "user_saved_ideas"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    idea_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("income_ideas.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=ProgressStatus.INTERESTED.value
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "idea_id", name="uq_user_saved_ideas_user_idea"),
    )


class SavedFranchise(Base):
    """A franchise bookmarked by a member."""

    __tablename__ = "user_saved_franchises"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    franchise_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("franchises.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "franchise_id", name="uq_user_saved_franchises_user_franchise"),
    )


class ExpertAuditRequest(Base):
    """A member's request for an expert evaluation of a franchise brand."""

    __tablename__ = "expert_audit_requests"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    brand_name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand_sector: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    investment_budget: Mapped[str] = mapped_column(String(40), nullable=False, server_default="5-10L")
    location_target: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    additional_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=AuditRequestStatus.PENDING.value
    )
    admin_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_expert_audit_requests_user", "user_id", "created_at"),
        Index("idx_expert_audit_requests_status", "status"),
    )


class Notification(Base):
    """In-app notification delivered to a member's bell."""

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=NotificationType.SYSTEM.value
    )
    link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )


# ============================================================================
# Pydantic Request Models
# ============================================================================


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    content: str = Field(..., min_length=3, max_length=2000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Review must be at least 3 characters")
        return v


class ReviewReply(BaseModel):
    response: str = Field(..., min_length=1, max_length=2000)


class ProgressUpdate(BaseModel):
    status: ProgressStatus
    notes: Optional[str] = Field(None, max_length=2000)


class AuditRequestCreate(BaseModel):
    """Expert audit request form."""

    brand_name: str = Field(..., min_length=2, max_length=200)
    brand_sector: Optional[str] = Field(None, max_length=80)
    website_url: Optional[str] = Field(None, max_length=2048)
    investment_budget: str = Field(default="5-10L", max_length=40)
    location_target: Optional[str] = Field(None, max_length=200)
    additional_notes: Optional[str] = Field(None, max_length=4000)


class AuditStatusUpdate(BaseModel):
    """Admin transition of an audit request."""

    status: AuditRequestStatus
    admin_feedback: Optional[str] = Field(None, max_length=4000)
    report_url: Optional[str] = Field(None, max_length=2048)


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    email: EmailStr
    subject: str = Field(default="General enquiry", max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)


# ============================================================================
# Pydantic Response Models
# ============================================================================


class ReviewResponse(BaseModel):
    id: UUID
    idea_id: UUID
    user_id: UUID
    rating: int
    content: str
    author_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime
    reviewer_name: Optional[str] = None
    reviewer_avatar_url: Optional[str] = None


class ReviewListResponse(BaseModel):
    items: List[ReviewResponse]
    average_rating: Optional[float] = None
    review_count: int = 0


class SavedIdeaResponse(BaseModel):
    id: UUID
    idea_id: UUID
    status: ProgressStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    idea: IdeaResponse


class SavedFranchiseResponse(BaseModel):
    id: UUID
    franchise_id: UUID
    created_at: datetime
    franchise: FranchiseResponse


class ToggleResponse(BaseModel):
    saved: bool


class DashboardResponse(BaseModel):
    saved_ideas: List[SavedIdeaResponse]
    saved_franchises: List[SavedFranchiseResponse]
    my_ideas_count: int
    progress_breakdown: Dict[str, int]


class AuditRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    brand_name: str
    brand_sector: Optional[str] = None
    website_url: Optional[str] = None
    investment_budget: str
    location_target: Optional[str] = None
    additional_notes: Optional[str] = None
    status: AuditRequestStatus
    admin_feedback: Optional[str] = None
    report_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    requester_name: Optional[str] = None


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    link: Optional[str] = None
    is_read: bool = False
    created_at: datetime


class NotificationInboxResponse(BaseModel):
    items: List[NotificationResponse]
    unread_count: int


class ContactAccepted(BaseModel):
    message: str = "Thanks for reaching out. We will get back to you shortly."
    relay: Dict[str, Any] = Field(default_factory=dict)

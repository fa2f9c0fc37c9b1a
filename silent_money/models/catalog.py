"""
Catalog models: categories, income ideas, franchises and votes.

Provides both SQLAlchemy ORM models (table definitions) and Pydantic
schemas for the public directory and the submission forms.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union
from uuid import UUID, uuid4
from enum import Enum

from sqlalchemy import (
    String, Boolean, DateTime, Integer, Numeric, Text, ForeignKey, Index,
    UniqueConstraint, CheckConstraint, text,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID, ARRAY
from sqlalchemy.orm import Mapped, mapped_column
from pydantic import BaseModel, Field, field_validator, model_validator

from silent_money.models.auth import Base


# ============================================================================
# Enums
# ============================================================================


class CategoryType(str, Enum):
    """What a category classifies."""
    IDEA = "idea"
    FRANCHISE = "franchise"


class AssetType(str, Enum):
    """Moderated asset kinds."""
    IDEA = "idea"
    FRANCHISE = "franchise"


class AssetStatus(str, Enum):
    """
    Moderation status of a submitted asset.

    PENDING -> APPROVED, or PENDING -> REVISION -> (edit) -> PENDING.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REVISION = "revision"


class EffortLevel(str, Enum):
    PASSIVE = "passive"
    SEMI_PASSIVE = "semi-passive"
    ACTIVE = "active"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FranchiseSector(str, Enum):
    FOOD_AND_BEVERAGE = "Food & Beverage"
    RETAIL = "Retail"
    HEALTHCARE = "Healthcare"
    LOGISTICS = "Logistics"
    EDUCATION = "Education"
    AUTOMOTIVE = "Automotive"
    SERVICE = "Service"


class IdeaSort(str, Enum):
    NEWEST = "created_at"
    MOST_UPVOTED = "upvotes_count"


# ============================================================================
# SQLAlchemy Models
# ============================================================================


class Category(Base):
    """Taxonomy entry for ideas or franchises."""

    __tablename__ = "categories"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    name: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint("type IN ('idea', 'franchise')", name="ck_categories_type"),
        Index("idx_categories_type_order", "type", "display_order"),
    )


class IncomeIdea(Base):
    """A passive or semi-passive income opportunity submitted by a member."""

    __tablename__ = "income_ideas"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    category_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    short_description: Mapped[str] = mapped_column(Text, nullable=False)
    full_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reality_check: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    initial_investment_min: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default=text("0")
    )
    initial_investment_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    monthly_income_min: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default=text("0")
    )
    monthly_income_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    time_to_first_income_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    effort_level: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=EffortLevel.SEMI_PASSIVE.value
    )
    risk_level: Mapped[str] = mapped_column(
        String(10), nullable=False, server_default=RiskLevel.MEDIUM.value
    )
    success_rate_percentage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    skills_required: Mapped[List[str]] = mapped_column(
        ARRAY(Text), nullable=False, server_default=text("'{}'")
    )
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    is_india_specific: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    author_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=AssetStatus.PENDING.value
    )
    admin_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    upvotes_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint("upvotes_count >= 0", name="ck_income_ideas_upvotes"),
        CheckConstraint(
            "success_rate_percentage IS NULL OR success_rate_percentage BETWEEN 0 AND 100",
            name="ck_income_ideas_success_rate"
        ),
        Index("idx_income_ideas_public", "is_approved", "deleted_at", "created_at"),
        Index("idx_income_ideas_author", "author_id"),
        Index("idx_income_ideas_category", "category_id"),
    )


class Franchise(Base):
    """A franchise brand listed in the directory."""

    __tablename__ = "franchises"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4,
        server_default=text("gen_random_uuid()")
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    investment_min: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default=text("0"))
    investment_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    roi_months_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    roi_months_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    space_required_sqft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expected_profit_min: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    expected_profit_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    author_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=AssetStatus.PENDING.value
    )
    admin_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_franchises_public", "is_approved", "deleted_at", "created_at"),
        Index("idx_franchises_author", "author_id"),
    )


class IdeaVote(Base):
    """One upvote per member per idea."""

    __tablename__ = "income_ideas_votes"

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
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "idea_id", name="uq_income_ideas_votes_user_idea"),
    )


# ============================================================================
# Helpers
# ============================================================================


def _split_skills(value: Union[str, List[str], None]) -> List[str]:
    """Accept a list or a comma separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [skill.strip() for skill in value if skill and skill.strip()]


# ============================================================================
# Pydantic Request Models
# ============================================================================


class CategoryCreate(BaseModel):
    """Create a category; slug is derived from the name when omitted."""

    name: str = Field(..., min_length=2, max_length=80)
    type: CategoryType
    slug: Optional[str] = Field(None, max_length=100)
    icon: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = Field(None, max_length=500)
    display_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=80)
    slug: Optional[str] = Field(None, max_length=100)
    icon: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = Field(None, max_length=500)
    display_order: Optional[int] = Field(None, ge=0)


class IdeaCreate(BaseModel):
    """Submission form for an income idea."""

    title: str = Field(..., min_length=5, max_length=200)
    category_id: Optional[UUID] = None
    short_description: str = Field(..., min_length=10, max_length=500)
    full_description: Optional[str] = None
    reality_check: Optional[str] = None
    initial_investment_min: Decimal = Field(default=Decimal("0"), ge=0)
    initial_investment_max: Optional[Decimal] = Field(None, ge=0)
    monthly_income_min: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_income_max: Optional[Decimal] = Field(None, ge=0)
    time_to_first_income_days: Optional[int] = Field(None, ge=0)
    effort_level: EffortLevel = EffortLevel.SEMI_PASSIVE
    risk_level: RiskLevel = RiskLevel.MEDIUM
    success_rate_percentage: Optional[int] = Field(None, ge=0, le=100)
    skills_required: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    is_premium: bool = False
    is_india_specific: bool = True

    @field_validator("skills_required", mode="before")
    @classmethod
    def split_skills(cls, v):
        return _split_skills(v)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.initial_investment_max is not None and self.initial_investment_max < self.initial_investment_min:
            raise ValueError("initial_investment_max must be >= initial_investment_min")
        if self.monthly_income_max is not None and self.monthly_income_max < self.monthly_income_min:
            raise ValueError("monthly_income_max must be >= monthly_income_min")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Rent out rooftop for solar panels",
                "short_description": "Lease unused rooftop space to a solar developer.",
                "initial_investment_min": 0,
                "monthly_income_min": 3000,
                "monthly_income_max": 8000,
                "effort_level": "passive",
                "risk_level": "low",
                "skills_required": "negotiation, paperwork"
            }
        }
    }


class IdeaUpdate(BaseModel):
    """Partial edit by the author; any edit re-enters moderation."""

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    category_id: Optional[UUID] = None
    short_description: Optional[str] = Field(None, min_length=10, max_length=500)
    full_description: Optional[str] = None
    reality_check: Optional[str] = None
    initial_investment_min: Optional[Decimal] = Field(None, ge=0)
    initial_investment_max: Optional[Decimal] = Field(None, ge=0)
    monthly_income_min: Optional[Decimal] = Field(None, ge=0)
    monthly_income_max: Optional[Decimal] = Field(None, ge=0)
    time_to_first_income_days: Optional[int] = Field(None, ge=0)
    effort_level: Optional[EffortLevel] = None
    risk_level: Optional[RiskLevel] = None
    success_rate_percentage: Optional[int] = Field(None, ge=0, le=100)
    skills_required: Optional[List[str]] = None
    image_url: Optional[str] = None
    is_premium: Optional[bool] = None
    is_india_specific: Optional[bool] = None

    @field_validator("skills_required", mode="before")
    @classmethod
    def split_skills(cls, v):
        if v is None:
            return None
        return _split_skills(v)


class IdeaFilter(BaseModel):
    """Query parameters of the public idea listing."""

    category: Optional[str] = Field(None, description="Category slug")
    min_income: Optional[Decimal] = Field(None, ge=0)
    search: Optional[str] = Field(None, max_length=100)
    sort: IdeaSort = IdeaSort.NEWEST
    featured_only: bool = False


class FranchiseCreate(BaseModel):
    """Submission form for a franchise brand."""

    name: str = Field(..., min_length=2, max_length=200)
    category: FranchiseSector
    description: Optional[str] = None
    investment_min: Decimal = Field(default=Decimal("0"), ge=0)
    investment_max: Optional[Decimal] = Field(None, ge=0)
    roi_months_min: Optional[int] = Field(None, ge=0)
    roi_months_max: Optional[int] = Field(None, ge=0)
    space_required_sqft: Optional[int] = Field(None, ge=0)
    expected_profit_min: Optional[Decimal] = Field(None, ge=0)
    expected_profit_max: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=40)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.investment_max is not None and self.investment_max < self.investment_min:
            raise ValueError("investment_max must be >= investment_min")
        if (
            self.roi_months_min is not None
            and self.roi_months_max is not None
            and self.roi_months_max < self.roi_months_min
        ):
            raise ValueError("roi_months_max must be >= roi_months_min")
        return self


class FranchiseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    category: Optional[FranchiseSector] = None
    description: Optional[str] = None
    investment_min: Optional[Decimal] = Field(None, ge=0)
    investment_max: Optional[Decimal] = Field(None, ge=0)
    roi_months_min: Optional[int] = Field(None, ge=0)
    roi_months_max: Optional[int] = Field(None, ge=0)
    space_required_sqft: Optional[int] = Field(None, ge=0)
    expected_profit_min: Optional[Decimal] = Field(None, ge=0)
    expected_profit_max: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=40)


# ============================================================================
# Pydantic Response Models
# ============================================================================


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    type: CategoryType
    icon: Optional[str] = None
    description: Optional[str] = None
    display_order: int = 0
    created_at: Optional[datetime] = None


class IdeaResponse(BaseModel):
    """Income idea as shown in listings and detail pages."""

    id: UUID
    title: str
    slug: str
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None
    short_description: str
    full_description: Optional[str] = None
    reality_check: Optional[str] = None
    initial_investment_min: Decimal
    initial_investment_max: Optional[Decimal] = None
    monthly_income_min: Decimal
    monthly_income_max: Optional[Decimal] = None
    time_to_first_income_days: Optional[int] = None
    effort_level: EffortLevel
    risk_level: RiskLevel
    success_rate_percentage: Optional[int] = None
    skills_required: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    is_premium: bool = False
    is_india_specific: bool = True
    author_id: Optional[UUID] = None
    author_name: Optional[str] = None
    is_approved: bool = False
    status: AssetStatus = AssetStatus.PENDING
    admin_feedback: Optional[str] = None
    is_featured: bool = False
    upvotes_count: int = 0
    has_voted: bool = False
    is_saved: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None


class FranchiseResponse(BaseModel):
    """Franchise brand as shown in listings and detail pages."""

    id: UUID
    name: str
    slug: str
    category: str
    description: Optional[str] = None
    investment_min: Decimal
    investment_max: Optional[Decimal] = None
    roi_months_min: Optional[int] = None
    roi_months_max: Optional[int] = None
    space_required_sqft: Optional[int] = None
    expected_profit_min: Optional[Decimal] = None
    expected_profit_max: Optional[Decimal] = None
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    author_id: Optional[UUID] = None
    is_verified: bool = False
    is_approved: bool = False
    status: AssetStatus = AssetStatus.PENDING
    admin_feedback: Optional[str] = None
    is_featured: bool = False
    is_saved: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None


class IdeaListResponse(BaseModel):
    items: List[IdeaResponse]
    total: int
    limit: int
    offset: int


class FranchiseListResponse(BaseModel):
    items: List[FranchiseResponse]
    total: int
    limit: int
    offset: int


class VoteResponse(BaseModel):
    voted: bool
    upvotes_count: int

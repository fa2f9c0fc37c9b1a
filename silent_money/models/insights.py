"""
Read-side schemas: ROI projections, comparison, global search and public profiles.

These are Pydantic-only; nothing here maps to a table.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from silent_money.models.catalog import AssetType, FranchiseResponse, IdeaResponse


class RoiRequest(BaseModel):
    """Inputs of the ROI calculator; defaults match the calculator widget."""

    investment: Decimal = Field(default=Decimal("10000"), ge=0)
    monthly_income: Decimal = Field(default=Decimal("1000"), ge=0)
    monthly_expenses: Decimal = Field(default=Decimal("0"), ge=0)
    years: int = Field(default=1, ge=1, le=10)


class YearProjection(BaseModel):
    year: int
    cumulative_net: Decimal


class RoiProjection(BaseModel):
    months: int
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    roi_percent: Decimal
    monthly_net: Decimal
    break_even_months: Optional[int] = Field(
        None, description="Months to recover the investment; null means never"
    )
    yearly: List[YearProjection]
    net_profit_display: str
    investment_display: str


class ComparisonAsset(BaseModel):
    """Idea or franchise reduced to the fields compared side by side."""

    key: str = Field(..., description="'idea:<uuid>' or 'franchise:<uuid>'")
    asset_type: AssetType
    id: UUID
    name: str
    slug: str
    investment: Decimal
    monthly_income: Decimal
    risk: str
    effort: str
    category: Optional[str] = None
    image_url: Optional[str] = None


class CompareRequest(BaseModel):
    keys: List[str] = Field(..., min_length=1)

    @field_validator("keys")
    @classmethod
    def dedupe(cls, v: List[str]) -> List[str]:
        seen = []
        for key in v:
            if key not in seen:
                seen.append(key)
        return seen


class ComparisonResponse(BaseModel):
    assets: List[ComparisonAsset]


class SearchHit(BaseModel):
    asset_type: AssetType
    id: UUID
    title: str
    slug: str
    summary: Optional[str] = None
    link: str


class SearchResults(BaseModel):
    query: str
    ideas: List[SearchHit] = Field(default_factory=list)
    franchises: List[SearchHit] = Field(default_factory=list)


class PublicProfileResponse(BaseModel):
    id: UUID
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    ideas: List[IdeaResponse] = Field(default_factory=list)
    franchises: List[FranchiseResponse] = Field(default_factory=list)

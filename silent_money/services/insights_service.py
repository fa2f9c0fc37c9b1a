"""
ROI projections and global search.
"""

import structlog
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import List, Optional

from silent_money.models.catalog import AssetType
from silent_money.models.insights import (
    RoiProjection, RoiRequest, SearchHit, SearchResults, YearProjection,
)
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.utils.formatting import format_inr_short

logger = structlog.get_logger(__name__)

MIN_QUERY_LENGTH = 2
CENT = Decimal("0.01")


def calculate_roi(request: RoiRequest) -> RoiProjection:
    """
    Project returns of an investment over whole years.

    net_profit = (monthly_income - monthly_expenses) * months - investment.
    Break-even is the first whole month the running net covers the
    investment; it is None when the monthly net is not positive.

    Args:
        request: Investment, monthly income and expenses, years (1-10)

    Returns:
        Projection with totals, ROI percent and yearly cumulative net
    """
    months = request.years * 12
    total_revenue = request.monthly_income * months
    total_expenses = request.monthly_expenses * months
    net_profit = total_revenue - total_expenses - request.investment
    monthly_net = request.monthly_income - request.monthly_expenses

    if request.investment > 0:
        roi_percent = (net_profit / request.investment * 100).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        roi_percent = Decimal("0.00")

    break_even: Optional[int] = None
    if monthly_net > 0:
        break_even = int((request.investment / monthly_net).to_integral_value(rounding=ROUND_CEILING))

    yearly = [
        YearProjection(year=year, cumulative_net=monthly_net * 12 * year - request.investment)
        for year in range(1, request.years + 1)
    ]

    return RoiProjection(
        months=months,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=net_profit,
        roi_percent=roi_percent,
        monthly_net=monthly_net,
        break_even_months=break_even,
        yearly=yearly,
        net_profit_display=format_inr_short(net_profit),
        investment_display=format_inr_short(request.investment),
    )


class InsightsService:
    """Cross-catalog search."""

    def __init__(self, idea_repo: IdeaRepository, franchise_repo: FranchiseRepository, limit: int = 10):
        self.idea_repo = idea_repo
        self.franchise_repo = franchise_repo
        self.limit = limit

    async def global_search(self, query: Optional[str]) -> SearchResults:
        """
        Search public ideas and franchises.

        Queries shorter than two characters return no results.
        """
        term = (query or "").strip()
        if len(term) < MIN_QUERY_LENGTH:
            return SearchResults(query=term)

        ideas = await self.idea_repo.search_public(term, self.limit)
        franchises = await self.franchise_repo.search_public(term, self.limit)
        logger.debug("global_search", query=term, ideas=len(ideas), franchises=len(franchises))

        idea_hits: List[SearchHit] = [
            SearchHit(
                asset_type=AssetType.IDEA,
                id=row["id"],
                title=row["title"],
                slug=row["slug"],
                summary=row.get("short_description"),
                link=f"/ideas/{row['slug']}",
            )
            for row in ideas
        ]
        franchise_hits: List[SearchHit] = [
            SearchHit(
                asset_type=AssetType.FRANCHISE,
                id=row["id"],
                title=row["name"],
                slug=row["slug"],
                summary=row.get("category"),
                link=f"/franchise/{row['slug']}",
            )
            for row in franchises
        ]
        return SearchResults(query=term, ideas=idea_hits, franchises=franchise_hits)

"""
Member library: saved ideas and franchises, progress tracking,
the personal dashboard and side-by-side comparison.
"""

import structlog
from collections import Counter
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from silent_money.exceptions import InvalidStateError, NotFoundError, SilentMoneyError
from silent_money.models.auth import CurrentUser
from silent_money.models.catalog import AssetType, FranchiseResponse, IdeaResponse
from silent_money.models.community import (
    DashboardResponse, ProgressStatus, ProgressUpdate, SavedFranchiseResponse,
    SavedIdeaResponse, ToggleResponse,
)
from silent_money.models.insights import ComparisonAsset, ComparisonResponse
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.library_repo import LibraryRepository
from shared.metrics import PlatformMetrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

FRANCHISE_RISK = "Medium"
FRANCHISE_EFFORT = "Active"


def _label(value: Any) -> str:
    return str(getattr(value, "value", value)).capitalize()


def idea_comparison_asset(idea: Dict[str, Any]) -> ComparisonAsset:
    return ComparisonAsset(
        key=f"idea:{idea['id']}",
        asset_type=AssetType.IDEA,
        id=idea["id"],
        name=idea["title"],
        slug=idea["slug"],
        investment=idea["initial_investment_min"] or Decimal("0"),
        monthly_income=idea["monthly_income_min"] or Decimal("0"),
        risk=_label(idea["risk_level"]),
        effort=_label(idea["effort_level"]),
        category=idea.get("category_name"),
        image_url=idea.get("image_url"),
    )


def franchise_comparison_asset(franchise: Dict[str, Any]) -> ComparisonAsset:
    return ComparisonAsset(
        key=f"franchise:{franchise['id']}",
        asset_type=AssetType.FRANCHISE,
        id=franchise["id"],
        name=franchise["name"],
        slug=franchise["slug"],
        investment=franchise["investment_min"] or Decimal("0"),
        monthly_income=franchise["expected_profit_min"] or Decimal("0"),
        risk=FRANCHISE_RISK,
        effort=FRANCHISE_EFFORT,
        category=franchise.get("category"),
        image_url=franchise.get("image_url"),
    )


def parse_asset_key(key: str) -> Tuple[AssetType, UUID]:
    """
    Split an 'idea:<uuid>' / 'franchise:<uuid>' key.

    Raises:
        InvalidStateError: Malformed key
    """
    kind, _, raw_id = key.partition(":")
    try:
        return AssetType(kind), UUID(raw_id)
    except ValueError:
        raise InvalidStateError(f"Invalid comparison key: {key}")


class LibraryService:
    """Saved items and what is built from them."""

    def __init__(
        self,
        library_repo: LibraryRepository,
        idea_repo: IdeaRepository,
        franchise_repo: FranchiseRepository,
        max_compare: int = 3,
        metrics: Optional[PlatformMetrics] = None,
    ):
        self.library_repo = library_repo
        self.idea_repo = idea_repo
        self.franchise_repo = franchise_repo
        self.max_compare = max_compare
        self.metrics = metrics

    def _record(self, action: str) -> None:
        if self.metrics:
            self.metrics.engagement.labels(action=action).inc()

    async def toggle_saved_idea(self, user: CurrentUser, idea_id: UUID) -> ToggleResponse:
        if not await self.idea_repo.get_by_id(idea_id):
            raise NotFoundError("Idea not found")
        saved = await self.library_repo.toggle_saved_idea(user.id, idea_id)
        self._record("save" if saved else "unsave")
        return ToggleResponse(saved=saved)

    async def toggle_saved_franchise(self, user: CurrentUser, franchise_id: UUID) -> ToggleResponse:
        if not await self.franchise_repo.get_by_id(franchise_id):
            raise NotFoundError("Franchise not found")
        saved = await self.library_repo.toggle_saved_franchise(user.id, franchise_id)
        self._record("save" if saved else "unsave")
        return ToggleResponse(saved=saved)

    async def update_progress(self, user: CurrentUser, idea_id: UUID, payload: ProgressUpdate) -> Dict[str, Any]:
        """
        Record where the member stands with a saved idea.

        Raises:
            NotFoundError: The idea is not in the caller's library
        """
        row = await self.library_repo.update_progress(user.id, idea_id, payload.status.value, payload.notes)
        if not row:
            raise NotFoundError("Idea is not in your library")
        return row

    async def list_saved_ideas(self, user: CurrentUser) -> List[SavedIdeaResponse]:
        saved = await self.library_repo.list_saved_ideas(user.id)
        ideas = await self.idea_repo.get_many(row["idea_id"] for row in saved)
        return [
            SavedIdeaResponse(**row, idea=IdeaResponse(**ideas[row["idea_id"]], is_saved=True))
            for row in saved
            if row["idea_id"] in ideas
        ]

    async def list_saved_franchises(self, user: CurrentUser) -> List[SavedFranchiseResponse]:
        saved = await self.library_repo.list_saved_franchises(user.id)
        franchises = await self.franchise_repo.get_many(row["franchise_id"] for row in saved)
        return [
            SavedFranchiseResponse(
                **row,
                franchise=FranchiseResponse(**franchises[row["franchise_id"]], is_saved=True)
            )
            for row in saved
            if row["franchise_id"] in franchises
        ]

    async def dashboard(self, user: CurrentUser) -> DashboardResponse:
        saved_ideas = await self.list_saved_ideas(user)
        saved_franchises = await self.list_saved_franchises(user)
        my_ideas_count = await self.idea_repo.count_by_author(user.id)

        counts = Counter(item.status.value for item in saved_ideas)
        breakdown = {status.value: counts.get(status.value, 0) for status in ProgressStatus}

        return DashboardResponse(
            saved_ideas=saved_ideas,
            saved_franchises=saved_franchises,
            my_ideas_count=my_ideas_count,
            progress_breakdown=breakdown,
        )

    async def comparison_candidates(self, user: CurrentUser) -> List[ComparisonAsset]:
        """Every saved idea and franchise in comparison form."""
        saved_ideas = await self.list_saved_ideas(user)
        saved_franchises = await self.list_saved_franchises(user)
        candidates = [idea_comparison_asset(item.idea.model_dump()) for item in saved_ideas]
        candidates += [franchise_comparison_asset(item.franchise.model_dump()) for item in saved_franchises]
        return candidates

    @trace_function("library.compare", expected=(SilentMoneyError,))
    async def compare(self, user: CurrentUser, keys: List[str]) -> ComparisonResponse:
        """
        Side-by-side view of up to max_compare saved assets.

        Raises:
            InvalidStateError: Too many or malformed keys
            NotFoundError: A key is not in the caller's library
        """
        if len(keys) > self.max_compare:
            raise InvalidStateError(f"You can compare at most {self.max_compare} assets")

        parsed = [parse_asset_key(key) for key in keys]
        idea_ids = [asset_id for kind, asset_id in parsed if kind is AssetType.IDEA]
        franchise_ids = [asset_id for kind, asset_id in parsed if kind is AssetType.FRANCHISE]

        if idea_ids and not set(idea_ids) <= await self.library_repo.saved_idea_ids(user.id):
            raise NotFoundError("Only saved ideas can be compared")
        if franchise_ids and not set(franchise_ids) <= await self.library_repo.saved_franchise_ids(user.id):
            raise NotFoundError("Only saved franchises can be compared")

        ideas = await self.idea_repo.get_many(idea_ids)
        franchises = await self.franchise_repo.get_many(franchise_ids)

        assets = []
        for kind, asset_id in parsed:
            if kind is AssetType.IDEA and asset_id in ideas:
                assets.append(idea_comparison_asset(ideas[asset_id]))
            elif kind is AssetType.FRANCHISE and asset_id in franchises:
                assets.append(franchise_comparison_asset(franchises[asset_id]))
        return ComparisonResponse(assets=assets)

"""
Unit tests for the member library.

Tests cover:
- Save toggles for ideas and franchises
- Progress updates
- Dashboard progress breakdown
- Side-by-side comparison rules
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from silent_money.exceptions import InvalidStateError, NotFoundError
from silent_money.models.catalog import AssetType
from silent_money.models.community import ProgressStatus, ProgressUpdate
from silent_money.services.library_service import (
    LibraryService,
    franchise_comparison_asset,
    idea_comparison_asset,
    parse_asset_key,
)
from tests.factories import make_franchise, make_idea, now


def saved_idea_row(idea, status="interested"):
    return {
        "id": uuid4(),
        "idea_id": idea["id"],
        "status": status,
        "notes": None,
        "created_at": now(),
        "updated_at": None,
    }


def saved_franchise_row(franchise):
    return {"id": uuid4(), "franchise_id": franchise["id"], "created_at": now()}


@pytest.fixture
def library_repo():
    repo = MagicMock()
    repo.toggle_saved_idea = AsyncMock(return_value=True)
    repo.toggle_saved_franchise = AsyncMock(return_value=False)
    repo.update_progress = AsyncMock()
    repo.list_saved_ideas = AsyncMock(return_value=[])
    repo.list_saved_franchises = AsyncMock(return_value=[])
    repo.saved_idea_ids = AsyncMock(return_value=set())
    repo.saved_franchise_ids = AsyncMock(return_value=set())
    return repo


@pytest.fixture
def idea_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=make_idea())
    repo.get_many = AsyncMock(return_value={})
    repo.count_by_author = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def franchise_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=make_franchise())
    repo.get_many = AsyncMock(return_value={})
    return repo


@pytest.fixture
def service(library_repo, idea_repo, franchise_repo):
    return LibraryService(library_repo, idea_repo, franchise_repo, max_compare=3)


# ============================================================================
# SAVES AND PROGRESS
# ============================================================================


class TestSaves:
    """Test save toggles."""

    @pytest.mark.asyncio
    async def test_toggle_idea(self, service, library_repo, member):
        idea_id = uuid4()

        response = await service.toggle_saved_idea(member, idea_id)

        assert response.saved is True
        library_repo.toggle_saved_idea.assert_awaited_once_with(member.id, idea_id)

    @pytest.mark.asyncio
    async def test_toggle_franchise_off(self, service, member):
        response = await service.toggle_saved_franchise(member, uuid4())

        assert response.saved is False

    @pytest.mark.asyncio
    async def test_toggle_unknown_idea(self, service, idea_repo, library_repo, member):
        idea_repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.toggle_saved_idea(member, uuid4())

        library_repo.toggle_saved_idea.assert_not_awaited()


class TestProgress:
    """Test progress tracking on saved ideas."""

    @pytest.mark.asyncio
    async def test_update(self, service, library_repo, member):
        idea_id = uuid4()
        library_repo.update_progress.return_value = {"idea_id": idea_id, "status": "started"}

        row = await service.update_progress(member, idea_id, ProgressUpdate(status=ProgressStatus.STARTED, notes="Day 1"))

        library_repo.update_progress.assert_awaited_once_with(member.id, idea_id, "started", "Day 1")
        assert row["status"] == "started"

    @pytest.mark.asyncio
    async def test_unsaved_idea(self, service, library_repo, member):
        library_repo.update_progress.return_value = None

        with pytest.raises(NotFoundError, match="not in your library"):
            await service.update_progress(member, uuid4(), ProgressUpdate(status=ProgressStatus.PAUSED))


class TestDashboard:
    """Test the personal dashboard."""

    @pytest.mark.asyncio
    async def test_breakdown_covers_every_status(self, service, library_repo, idea_repo, member):
        a, b, c = make_idea(), make_idea(), make_idea()
        library_repo.list_saved_ideas.return_value = [
            saved_idea_row(a, "started"),
            saved_idea_row(b, "started"),
            saved_idea_row(c, "paused"),
        ]
        idea_repo.get_many.return_value = {row["id"]: row for row in (a, b, c)}
        idea_repo.count_by_author.return_value = 2

        dashboard = await service.dashboard(member)

        assert dashboard.my_ideas_count == 2
        assert dashboard.progress_breakdown == {
            "interested": 0,
            "researching": 0,
            "started": 2,
            "active": 0,
            "paused": 1,
            "stopped": 0,
        }
        assert all(item.idea.is_saved for item in dashboard.saved_ideas)

    @pytest.mark.asyncio
    async def test_saved_rows_for_vanished_assets_are_skipped(self, service, library_repo, member):
        library_repo.list_saved_ideas.return_value = [saved_idea_row(make_idea())]

        saved = await service.list_saved_ideas(member)

        assert saved == []


# ============================================================================
# COMPARISON
# ============================================================================


class TestComparisonAssets:
    """Test normalisation of ideas and franchises for comparison."""

    def test_idea_labels_are_capitalized(self):
        asset = idea_comparison_asset(make_idea(risk_level="low", effort_level="semi-passive"))

        assert asset.risk == "Low"
        assert asset.effort == "Semi-passive"
        assert asset.monthly_income == Decimal("3000")
        assert asset.key.startswith("idea:")

    def test_franchise_uses_fixed_labels_and_profit(self):
        franchise = make_franchise()

        asset = franchise_comparison_asset(franchise)

        assert asset.key == f"franchise:{franchise['id']}"
        assert asset.risk == "Medium"
        assert asset.effort == "Active"
        assert asset.monthly_income == Decimal("40000")
        assert asset.category == "Food & Beverage"

    def test_missing_amounts_are_zero(self):
        asset = franchise_comparison_asset(make_franchise(expected_profit_min=None))

        assert asset.monthly_income == Decimal("0")

    def test_parse_key(self):
        asset_id = uuid4()

        assert parse_asset_key(f"idea:{asset_id}") == (AssetType.IDEA, asset_id)

    @pytest.mark.parametrize("key", ["idea", "book:00000000-0000-0000-0000-000000000000", "idea:not-a-uuid"])
    def test_malformed_key(self, key):
        with pytest.raises(InvalidStateError):
            parse_asset_key(key)


class TestCompare:
    """Test side-by-side comparison."""

    @pytest.mark.asyncio
    async def test_keeps_requested_order(self, service, library_repo, idea_repo, franchise_repo, member):
        idea, franchise = make_idea(), make_franchise()
        library_repo.saved_idea_ids.return_value = {idea["id"]}
        library_repo.saved_franchise_ids.return_value = {franchise["id"]}
        idea_repo.get_many.return_value = {idea["id"]: idea}
        franchise_repo.get_many.return_value = {franchise["id"]: franchise}

        response = await service.compare(member, [f"franchise:{franchise['id']}", f"idea:{idea['id']}"])

        assert [a.asset_type for a in response.assets] == [AssetType.FRANCHISE, AssetType.IDEA]

    @pytest.mark.asyncio
    async def test_too_many_assets(self, service, member):
        keys = [f"idea:{uuid4()}" for _ in range(4)]

        with pytest.raises(InvalidStateError, match="at most 3"):
            await service.compare(member, keys)

    @pytest.mark.asyncio
    async def test_unsaved_asset_rejected(self, service, library_repo, member):
        library_repo.saved_idea_ids.return_value = {uuid4()}

        with pytest.raises(NotFoundError, match="Only saved ideas"):
            await service.compare(member, [f"idea:{uuid4()}"])

    @pytest.mark.asyncio
    async def test_candidates_from_library(self, service, library_repo, idea_repo, franchise_repo, member):
        idea, franchise = make_idea(), make_franchise()
        library_repo.list_saved_ideas.return_value = [saved_idea_row(idea)]
        library_repo.list_saved_franchises.return_value = [saved_franchise_row(franchise)]
        idea_repo.get_many.return_value = {idea["id"]: idea}
        franchise_repo.get_many.return_value = {franchise["id"]: franchise}

        candidates = await service.comparison_candidates(member)

        assert [c.key for c in candidates] == [f"idea:{idea['id']}", f"franchise:{franchise['id']}"]
        assert candidates[0].risk == "Low"

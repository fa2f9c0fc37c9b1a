"""
Integration tests for the asyncpg repositories against PostgreSQL.

Tests cover:
- Schema creation from the table models
- Profile uniqueness, bans and sign-up growth
- Idea moderation states, slugs, votes, literal search and soft delete
- Category name and slug uniqueness
- One review per member per idea
- Expert audit status transitions
- Library toggles
- Notification read state
- Admin log JSON details and filters
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from silent_money.exceptions import ConflictError
from silent_money.models.audit import AdminLogFilter, TargetType
from silent_money.repositories.admin_log_repo import AdminLogRepository
from silent_money.repositories.audit_request_repo import AuditRequestRepository
from silent_money.repositories.category_repo import CategoryRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.library_repo import LibraryRepository
from silent_money.repositories.notification_repo import NotificationRepository
from silent_money.repositories.profile_repo import ProfileRepository
from silent_money.repositories.review_repo import ReviewRepository


async def create_member(pool, email="asha@example.com", full_name="Asha Verma"):
    return await ProfileRepository(pool).create_profile(email, "hash", full_name)


async def create_idea(pool, author_id, title="Rooftop Solar Lease", slug="rooftop-solar-lease", **values):
    return await IdeaRepository(pool).insert_asset({
        "title": title,
        "slug": slug,
        "short_description": "Lease your roof to a solar developer.",
        "monthly_income_min": Decimal("3000"),
        "skills_required": ["negotiation"],
        "author_id": author_id,
        **values,
    })


# ============================================================================
# PROFILES
# ============================================================================


class TestProfileRepository:
    """Test profile persistence."""

    @pytest.mark.asyncio
    async def test_email_is_unique_ignoring_case(self, pool):
        await create_member(pool)

        with pytest.raises(ConflictError):
            await create_member(pool, email="ASHA@example.com")

    @pytest.mark.asyncio
    async def test_lookup_by_email_is_case_insensitive(self, pool):
        created = await create_member(pool)

        found = await ProfileRepository(pool).get_by_email("Asha@Example.com")

        assert found["id"] == created["id"]
        assert found["role"] == "user"
        assert found["is_admin"] is False

    @pytest.mark.asyncio
    async def test_ban_and_count(self, pool):
        repo = ProfileRepository(pool)
        member = await create_member(pool)
        await create_member(pool, email="ravi@example.com", full_name="Ravi")

        banned = await repo.set_banned(member["id"], True)

        assert banned["is_banned"] is True
        assert await repo.count_profiles() == 2

    @pytest.mark.asyncio
    async def test_daily_signups_zero_filled(self, pool):
        await create_member(pool)

        growth = await ProfileRepository(pool).daily_signups(7)

        assert len(growth) == 7
        assert growth[-1][0] == date.today()
        assert sum(count for _, count in growth) == 1


# ============================================================================
# IDEAS
# ============================================================================


class TestIdeaRepository:
    """Test moderation state and votes on income ideas."""

    @pytest.mark.asyncio
    async def test_pending_ideas_are_not_public(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = IdeaRepository(pool)

        public, total = await repo.list_public()
        pending, pending_total = await repo.list_for_admin("pending")

        assert idea["status"] == "pending"
        assert (public, total) == ([], 0)
        assert pending_total == 1
        assert pending[0]["author_name"] == "Asha Verma"

    @pytest.mark.asyncio
    async def test_approval_publishes(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = IdeaRepository(pool)

        approved = await repo.set_approved(idea["id"])
        public, total = await repo.list_public(min_income=Decimal("2000"))

        assert approved["is_approved"] is True
        assert approved["status"] == "approved"
        assert total == 1
        assert public[0]["skills_required"] == ["negotiation"]

    @pytest.mark.asyncio
    async def test_category_filter_uses_slug(self, pool):
        member = await create_member(pool)
        category = await CategoryRepository(pool).create_category("Real Estate", "real-estate", "idea")
        idea = await create_idea(pool, member["id"], category_id=category["id"])
        await create_idea(pool, member["id"], title="Dividend Stocks", slug="dividend-stocks")
        repo = IdeaRepository(pool)
        await repo.set_approved(idea["id"])

        rows, total = await repo.list_public(category="real-estate")

        assert total == 1
        assert rows[0]["category_name"] == "Real Estate"

    @pytest.mark.asyncio
    async def test_revision_then_edit_returns_to_queue(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = IdeaRepository(pool)

        revised = await repo.set_revision(idea["id"], "Add sources")
        in_revision, _ = await repo.list_for_admin("revision")
        edited = await repo.update_asset(idea["id"], {"reality_check": "Needs a south-facing roof"})

        assert revised["admin_feedback"] == "Add sources"
        assert [row["id"] for row in in_revision] == [idea["id"]]
        assert edited["status"] == "pending"
        assert edited["admin_feedback"] is None

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        discount = await create_idea(pool, member["id"], title="Resell 50% off_cuts", slug="resell-offcuts")
        repo = IdeaRepository(pool)
        await repo.set_approved(idea["id"])
        await repo.set_approved(discount["id"])

        wildcard, wildcard_total = await repo.list_public(search="%%")
        underscore = await repo.search_public("_", 10)
        literal, literal_total = await repo.list_public(search="50%")

        assert (wildcard, wildcard_total) == ([], 0)
        assert [row["id"] for row in underscore] == [discount["id"]]
        assert literal_total == 1
        assert literal[0]["id"] == discount["id"]

    @pytest.mark.asyncio
    async def test_next_available_slug(self, pool):
        member = await create_member(pool)
        await create_idea(pool, member["id"])
        await create_idea(pool, member["id"], slug="rooftop-solar-lease-2")
        repo = IdeaRepository(pool)

        assert await repo.next_available_slug("rooftop-solar-lease") == "rooftop-solar-lease-3"
        assert await repo.next_available_slug("balcony-garden") == "balcony-garden"

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, pool):
        member = await create_member(pool)
        await create_idea(pool, member["id"])

        with pytest.raises(ConflictError):
            await create_idea(pool, member["id"])

    @pytest.mark.asyncio
    async def test_vote_toggle(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = IdeaRepository(pool)

        first = await repo.toggle_vote(member["id"], idea["id"])
        voted = await repo.has_voted(member["id"], idea["id"])
        second = await repo.toggle_vote(member["id"], idea["id"])

        assert first == (True, 1)
        assert voted is True
        assert second == (False, 0)

    @pytest.mark.asyncio
    async def test_soft_delete_keeps_first_timestamp(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = IdeaRepository(pool)

        archived = await repo.soft_delete(idea["id"])
        again = await repo.soft_delete(idea["id"])
        archived_rows, _ = await repo.list_for_admin("archived")
        restored = await repo.restore(idea["id"])

        assert archived["deleted_at"] is not None
        assert again["deleted_at"] == archived["deleted_at"]
        assert len(archived_rows) == 1
        assert restored["deleted_at"] is None


# ============================================================================
# CATEGORIES, REVIEWS AND AUDIT REQUESTS
# ============================================================================


class TestCategoryRepository:
    """Test category uniqueness."""

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, pool):
        repo = CategoryRepository(pool)
        await repo.create_category("Real Estate", "real-estate", "idea")

        with pytest.raises(ConflictError):
            await repo.create_category("Real Estate", "real-estate-2", "idea")

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, pool):
        repo = CategoryRepository(pool)
        await repo.create_category("Real Estate", "real-estate", "idea")

        with pytest.raises(ConflictError):
            await repo.create_category("Property", "real-estate", "idea")

    @pytest.mark.asyncio
    async def test_rename_onto_existing_conflicts(self, pool):
        repo = CategoryRepository(pool)
        await repo.create_category("Real Estate", "real-estate", "idea")
        other = await repo.create_category("Digital", "digital", "idea")

        with pytest.raises(ConflictError, match="Another category"):
            await repo.update_category(other["id"], {"slug": "real-estate"})


class TestReviewRepository:
    """Test one review per member per idea."""

    @pytest.mark.asyncio
    async def test_second_review_conflicts(self, pool):
        author = await create_member(pool)
        reviewer = await create_member(pool, email="ravi@example.com", full_name="Ravi")
        idea = await create_idea(pool, author["id"])
        repo = ReviewRepository(pool)

        first = await repo.create_review(idea["id"], reviewer["id"], 4, "Worked for me")
        with pytest.raises(ConflictError) as exc_info:
            await repo.create_review(idea["id"], reviewer["id"], 1, "Changed my mind")

        assert first["reviewer_name"] == "Ravi"
        assert first["idea_author_id"] == author["id"]
        assert exc_info.value.detail == "You have already reviewed this idea"
        assert await repo.rating_summary(idea["id"]) == (4.0, 1)

    @pytest.mark.asyncio
    async def test_other_members_may_review(self, pool):
        author = await create_member(pool)
        ravi = await create_member(pool, email="ravi@example.com", full_name="Ravi")
        meera = await create_member(pool, email="meera@example.com", full_name="Meera")
        idea = await create_idea(pool, author["id"])
        repo = ReviewRepository(pool)

        await repo.create_review(idea["id"], ravi["id"], 5, "Great")
        await repo.create_review(idea["id"], meera["id"], 2, "Slow to pay off")

        assert await repo.rating_summary(idea["id"]) == (3.5, 2)


class TestAuditRequestRepository:
    """Test expert audit status changes."""

    @pytest.mark.asyncio
    async def test_create_starts_pending_with_default_budget(self, pool):
        member = await create_member(pool)

        request = await AuditRequestRepository(pool).create_request(
            member["id"], {"brand_name": "Chai Point", "brand_sector": "Food & Beverage"}
        )

        assert request["status"] == "pending"
        assert request["investment_budget"] == "5-10L"
        assert request["requester_name"] == "Asha Verma"

    @pytest.mark.asyncio
    async def test_update_keeps_unset_fields(self, pool):
        member = await create_member(pool)
        repo = AuditRequestRepository(pool)
        request = await repo.create_request(member["id"], {"brand_name": "Chai Point"})

        in_review = await repo.update_status(request["id"], "in-review", admin_feedback="Looking into it")
        completed = await repo.update_status(request["id"], "completed", report_url="https://cdn.example/r.pdf")

        assert in_review["status"] == "in-review"
        assert completed["status"] == "completed"
        assert completed["admin_feedback"] == "Looking into it"
        assert completed["report_url"] == "https://cdn.example/r.pdf"
        assert completed["updated_at"] >= in_review["updated_at"]

    @pytest.mark.asyncio
    async def test_update_unknown_request(self, pool):
        assert await AuditRequestRepository(pool).update_status(uuid4(), "completed") is None


# ============================================================================
# LIBRARY AND NOTIFICATIONS
# ============================================================================


class TestLibraryRepository:
    """Test saved ideas."""

    @pytest.mark.asyncio
    async def test_toggle_saved_idea(self, pool):
        member = await create_member(pool)
        idea = await create_idea(pool, member["id"])
        repo = LibraryRepository(pool)

        assert await repo.toggle_saved_idea(member["id"], idea["id"]) is True
        assert await repo.is_idea_saved(member["id"], idea["id"]) is True
        assert await repo.toggle_saved_idea(member["id"], idea["id"]) is False
        assert await repo.saved_idea_ids(member["id"]) == set()


class TestNotificationRepository:
    """Test notification read state."""

    @pytest.mark.asyncio
    async def test_mark_all_read(self, pool):
        member = await create_member(pool)
        repo = NotificationRepository(pool)
        await repo.create_notification(member["id"], "Asset Approved 🚀", "Live now", "approval", "/ideas/x")
        await repo.create_notification(member["id"], "Welcome", "Hello")

        assert await repo.count_unread(member["id"]) == 2
        changed = await repo.mark_all_read(member["id"])

        assert len(changed) == 2
        assert await repo.count_unread(member["id"]) == 0

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses(self, pool):
        owner = await create_member(pool)
        other = await create_member(pool, email="ravi@example.com")
        repo = NotificationRepository(pool)
        note = await repo.create_notification(owner["id"], "Welcome", "Hello")

        assert await repo.mark_read(other["id"], note["id"]) is None


# ============================================================================
# ADMIN LOGS
# ============================================================================


class TestAdminLogRepository:
    """Test admin log storage and filtering."""

    @pytest.mark.asyncio
    async def test_details_round_trip_as_json(self, pool):
        admin = await create_member(pool, email="admin@example.com", full_name="Admin")
        repo = AdminLogRepository(pool)
        await repo.create_admin_log(admin["id"], "ban", "user", admin["id"], {"email": "x@example.com"})
        await repo.create_admin_log(admin["id"], "approve", "idea", None, {"title": "Solar"})

        rows, total = await repo.list_admin_logs(AdminLogFilter(target_type=TargetType.USER))

        assert total == 1
        assert rows[0]["details"] == {"email": "x@example.com"}
        assert rows[0]["admin_name"] == "Admin"

"""
Unit tests for idea reviews.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from silent_money.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from silent_money.models.community import NotificationType, ReviewCreate
from silent_money.services.review_service import ReviewService
from tests.factories import make_idea, make_user, now


def make_review(**overrides):
    row = {
        "id": uuid4(),
        "idea_id": uuid4(),
        "user_id": uuid4(),
        "rating": 4,
        "content": "Worked well for me.",
        "author_response": None,
        "responded_at": None,
        "created_at": now(),
        "reviewer_name": "Meera",
        "reviewer_avatar_url": None,
        "idea_author_id": uuid4(),
        "idea_title": "Rent out rooftop for solar panels",
        "idea_slug": "rent-out-rooftop-for-solar-panels",
    }
    row.update(overrides)
    return row


@pytest.fixture
def review_repo():
    repo = MagicMock()
    repo.list_for_idea = AsyncMock(return_value=[])
    repo.rating_summary = AsyncMock(return_value=(None, 0))
    repo.create_review = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.set_author_response = AsyncMock()
    repo.delete_review = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def idea_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=make_idea())
    return repo


@pytest.fixture
def service(review_repo, idea_repo, notifications):
    return ReviewService(review_repo, idea_repo, notifications)


class TestListReviews:
    """Test the review list with its rating summary."""

    @pytest.mark.asyncio
    async def test_summary(self, service, review_repo):
        review_repo.list_for_idea.return_value = [make_review(), make_review(rating=5)]
        review_repo.rating_summary.return_value = (4.5, 2)

        response = await service.list_reviews(uuid4())

        assert len(response.items) == 2
        assert response.average_rating == 4.5
        assert response.review_count == 2

    @pytest.mark.asyncio
    async def test_no_reviews(self, service):
        response = await service.list_reviews(uuid4())

        assert response.items == []
        assert response.average_rating is None


class TestCreateReview:
    """Test review submission."""

    @pytest.mark.asyncio
    async def test_creates_review(self, service, review_repo, member):
        idea_id = uuid4()
        review_repo.create_review.return_value = make_review(idea_id=idea_id, user_id=member.id, rating=5)

        response = await service.create_review(member, idea_id, ReviewCreate(rating=5, content="  Solid idea  "))

        review_repo.create_review.assert_awaited_once_with(idea_id, member.id, 5, "Solid idea")
        assert response.rating == 5

    @pytest.mark.asyncio
    async def test_unapproved_idea(self, service, idea_repo, member):
        idea_repo.get_by_id.return_value = make_idea(is_approved=False)

        with pytest.raises(NotFoundError):
            await service.create_review(member, uuid4(), ReviewCreate(rating=3, content="Meh idea"))

    @pytest.mark.asyncio
    async def test_second_review_conflicts(self, service, review_repo, member):
        review_repo.create_review.side_effect = ConflictError("You have already reviewed this idea")

        with pytest.raises(ConflictError):
            await service.create_review(member, uuid4(), ReviewCreate(rating=3, content="Again"))

    def test_rating_bounds(self):
        with pytest.raises(ValueError):
            ReviewCreate(rating=6, content="Too many stars")
        with pytest.raises(ValueError):
            ReviewCreate(rating=0, content="Too few stars")


class TestReplyToReview:
    """Test author replies and reviewer notification."""

    @pytest.mark.asyncio
    async def test_author_reply_notifies_reviewer(self, service, review_repo, notifications, member):
        review = make_review(idea_author_id=member.id)
        review_repo.get_by_id.return_value = review
        review_repo.set_author_response.return_value = {**review, "author_response": "Thanks!", "responded_at": now()}

        response = await service.reply_to_review(member, review["id"], "Thanks!")

        assert response.author_response == "Thanks!"
        kwargs = notifications.notify.await_args.kwargs
        assert kwargs["user_id"] == review["user_id"]
        assert kwargs["title"] == "The author replied to your review 💬"
        assert kwargs["notification_type"] is NotificationType.REVIEW
        assert kwargs["link"] == "/ideas/rent-out-rooftop-for-solar-panels"

    @pytest.mark.asyncio
    async def test_reply_to_own_review_is_silent(self, service, review_repo, notifications, member):
        review = make_review(idea_author_id=member.id, user_id=member.id)
        review_repo.get_by_id.return_value = review
        review_repo.set_author_response.return_value = review

        await service.reply_to_review(member, review["id"], "Noted")

        notifications.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_idea_author_may_reply(self, service, review_repo, member):
        review_repo.get_by_id.return_value = make_review()

        with pytest.raises(PermissionDeniedError):
            await service.reply_to_review(member, uuid4(), "Hi")

        review_repo.set_author_response.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_review(self, service, member):
        with pytest.raises(NotFoundError):
            await service.reply_to_review(member, uuid4(), "Hi")


class TestDeleteReview:
    """Test reviewer-only deletion."""

    @pytest.mark.asyncio
    async def test_reviewer_deletes(self, service, review_repo, member):
        review = make_review(user_id=member.id)
        review_repo.get_by_id.return_value = review

        await service.delete_review(member, review["id"])

        review_repo.delete_review.assert_awaited_once_with(review["id"])

    @pytest.mark.asyncio
    async def test_others_cannot_delete(self, service, review_repo):
        review_repo.get_by_id.return_value = make_review()

        with pytest.raises(PermissionDeniedError):
            await service.delete_review(make_user(), uuid4())

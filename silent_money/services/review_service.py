"""
Idea reviews: star ratings, author replies and deletion.
"""

import structlog
from typing import Optional
from uuid import UUID

from silent_money.exceptions import NotFoundError, PermissionDeniedError, SilentMoneyError
from silent_money.models.auth import CurrentUser
from silent_money.models.community import (
    NotificationType, ReviewCreate, ReviewListResponse, ReviewResponse,
)
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.review_repo import ReviewRepository
from silent_money.services.catalog_service import is_publicly_visible
from silent_money.services.notification_service import NotificationService
from shared.metrics import PlatformMetrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)


class ReviewService:
    """Service for reviews of income ideas."""

    def __init__(
        self,
        review_repo: ReviewRepository,
        idea_repo: IdeaRepository,
        notifications: NotificationService,
        metrics: Optional[PlatformMetrics] = None,
    ):
        self.review_repo = review_repo
        self.idea_repo = idea_repo
        self.notifications = notifications
        self.metrics = metrics

    async def list_reviews(self, idea_id: UUID) -> ReviewListResponse:
        rows = await self.review_repo.list_for_idea(idea_id)
        average, count = await self.review_repo.rating_summary(idea_id)
        return ReviewListResponse(
            items=[ReviewResponse(**row) for row in rows],
            average_rating=average,
            review_count=count,
        )

    @trace_function("reviews.create", expected=(SilentMoneyError,))
    async def create_review(self, user: CurrentUser, idea_id: UUID, payload: ReviewCreate) -> ReviewResponse:
        """
        Review a public idea; one review per member per idea.

        Raises:
            NotFoundError: Idea missing or not public
            ConflictError: Caller already reviewed this idea
        """
        idea = await self.idea_repo.get_by_id(idea_id)
        if not idea or not is_publicly_visible(idea):
            raise NotFoundError("Idea not found")

        row = await self.review_repo.create_review(idea_id, user.id, payload.rating, payload.content)
        if self.metrics:
            self.metrics.engagement.labels(action="review").inc()
        logger.info("review_created", idea_id=str(idea_id), user_id=str(user.id), rating=payload.rating)
        return ReviewResponse(**row)

    async def reply_to_review(self, user: CurrentUser, review_id: UUID, response: str) -> ReviewResponse:
        """
        Answer a review as the idea's author and notify the reviewer.

        Raises:
            NotFoundError: Review missing
            PermissionDeniedError: Caller did not write the idea
        """
        review = await self.review_repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review not found")
        if review["idea_author_id"] != user.id:
            logger.warning("review_reply_denied", review_id=str(review_id), user_id=str(user.id))
            raise PermissionDeniedError("Only the idea's author can reply to reviews")

        row = await self.review_repo.set_author_response(review_id, response)
        if not row:
            raise NotFoundError("Review not found")

        if review["user_id"] != user.id:
            await self.notifications.notify(
                user_id=review["user_id"],
                title="The author replied to your review 💬",
                message=f'The author of "{review["idea_title"]}" responded to your review.',
                notification_type=NotificationType.REVIEW,
                link=f"/ideas/{review['idea_slug']}",
            )
        logger.info("review_replied", review_id=str(review_id), author_id=str(user.id))
        return ReviewResponse(**row)

    async def delete_review(self, user: CurrentUser, review_id: UUID) -> None:
        review = await self.review_repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review not found")
        if review["user_id"] != user.id:
            raise PermissionDeniedError("You can only delete your own reviews")
        await self.review_repo.delete_review(review_id)

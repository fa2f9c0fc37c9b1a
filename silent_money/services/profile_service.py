"""
Public profiles and self-service profile edits.
"""

import structlog
from uuid import UUID

from silent_money.exceptions import NotFoundError
from silent_money.models.auth import CurrentUser, ProfileResponse, UpdateProfileRequest
from silent_money.models.catalog import FranchiseResponse, IdeaResponse
from silent_money.models.insights import PublicProfileResponse
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.profile_repo import ProfileRepository

logger = structlog.get_logger(__name__)


class ProfileService:
    def __init__(
        self,
        profile_repo: ProfileRepository,
        idea_repo: IdeaRepository,
        franchise_repo: FranchiseRepository,
    ):
        self.profile_repo = profile_repo
        self.idea_repo = idea_repo
        self.franchise_repo = franchise_repo

    async def get_public_profile(self, user_id: UUID) -> PublicProfileResponse:
        """Profile card with the member's approved ideas and franchises, newest first."""
        profile = await self.profile_repo.get_by_id(user_id)
        if not profile or profile["is_banned"]:
            raise NotFoundError("Profile not found")

        ideas = await self.idea_repo.list_by_author(user_id, public_only=True)
        franchises = await self.franchise_repo.list_by_author(user_id, public_only=True)
        return PublicProfileResponse(
            id=profile["id"],
            full_name=profile["full_name"],
            bio=profile["bio"],
            avatar_url=profile["avatar_url"],
            created_at=profile["created_at"],
            ideas=[IdeaResponse(**row) for row in ideas],
            franchises=[FranchiseResponse(**row) for row in franchises],
        )

    async def update_profile(self, user: CurrentUser, payload: UpdateProfileRequest) -> ProfileResponse:
        row = await self.profile_repo.update_profile(user.id, payload.model_dump(exclude_unset=True))
        if not row:
            raise NotFoundError("Profile not found")
        return ProfileResponse(**row)

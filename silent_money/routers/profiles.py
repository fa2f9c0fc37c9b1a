"""Public profiles and own-profile editing."""

from uuid import UUID

from fastapi import APIRouter, Depends

from silent_money.dependencies import get_current_active_user, get_profile_service
from silent_money.models.auth import CurrentUser, ErrorResponse, ProfileResponse, UpdateProfileRequest
from silent_money.models.insights import PublicProfileResponse
from silent_money.services.profile_service import ProfileService

router = APIRouter(
    prefix="/profiles",
    tags=["Profiles"],
    responses={404: {"model": ErrorResponse, "description": "Not Found"}}
)


@router.put("/me", response_model=ProfileResponse, summary="Update own profile")
async def update_profile(
    payload: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    return await service.update_profile(current_user, payload)


@router.get("/{user_id}", response_model=PublicProfileResponse, summary="Public profile")
async def get_public_profile(
    user_id: UUID,
    service: ProfileService = Depends(get_profile_service),
) -> PublicProfileResponse:
    """Profile card with the member's approved ideas and franchises."""
    return await service.get_public_profile(user_id)

"""
Income ideas router.

Provides REST API endpoints for:
- Public browsing and detail pages
- Submitting, editing and deleting own ideas
- Upvotes
- Reviews and author replies
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from silent_money.dependencies import (
    PaginationParams,
    get_current_active_user,
    get_idea_service,
    get_optional_user,
    get_review_service,
)
from silent_money.models.auth import CurrentUser, ErrorResponse
from silent_money.models.catalog import (
    IdeaCreate, IdeaFilter, IdeaListResponse, IdeaResponse, IdeaSort, IdeaUpdate, VoteResponse,
)
from silent_money.models.community import ReviewCreate, ReviewListResponse, ReviewReply, ReviewResponse
from silent_money.services.catalog_service import IdeaService
from silent_money.services.review_service import ReviewService

router = APIRouter(
    prefix="/ideas",
    tags=["Income Ideas"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        404: {"model": ErrorResponse, "description": "Not Found"}
    }
)


# ============================================================================
# IDEAS
# ============================================================================


@router.get("", response_model=IdeaListResponse, summary="Browse approved ideas")
async def list_ideas(
    category: Optional[str] = Query(None, description="Category slug"),
    min_income: Optional[Decimal] = Query(None, ge=0, description="Minimum monthly income"),
    search: Optional[str] = Query(None, max_length=100, description="Title contains"),
    sort: IdeaSort = Query(IdeaSort.NEWEST),
    featured_only: bool = Query(False),
    page: PaginationParams = Depends(),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaListResponse:
    filters = IdeaFilter(
        category=category,
        min_income=min_income,
        search=search,
        sort=sort,
        featured_only=featured_only,
    )
    return await service.list_ideas(filters, page.limit, page.offset)


@router.get("/mine", response_model=List[IdeaResponse], summary="Own ideas in any moderation state")
async def my_ideas(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: IdeaService = Depends(get_idea_service),
) -> List[IdeaResponse]:
    return await service.list_mine(current_user)


@router.post("", response_model=IdeaResponse, status_code=status.HTTP_201_CREATED, summary="Submit an idea")
async def create_idea(
    payload: IdeaCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaResponse:
    """The idea waits for moderation before it appears publicly."""
    return await service.create_idea(current_user, payload)


@router.get("/{slug}", response_model=IdeaResponse, summary="Idea detail")
async def get_idea(
    slug: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaResponse:
    return await service.get_by_slug(slug, viewer)


@router.put("/{idea_id}", response_model=IdeaResponse, summary="Edit own idea")
async def update_idea(
    idea_id: UUID,
    payload: IdeaUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaResponse:
    """Editing sends the idea back to the moderation queue."""
    return await service.update_idea(current_user, idea_id, payload)


@router.delete("/{idea_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete own idea")
async def delete_idea(
    idea_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: IdeaService = Depends(get_idea_service),
) -> Response:
    await service.delete(current_user, idea_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{idea_id}/vote", response_model=VoteResponse, summary="Toggle upvote")
async def toggle_vote(
    idea_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: IdeaService = Depends(get_idea_service),
) -> VoteResponse:
    return await service.toggle_vote(current_user, idea_id)


# ============================================================================
# REVIEWS
# ============================================================================


@router.get("/{idea_id}/reviews", response_model=ReviewListResponse, tags=["Reviews"])
async def list_reviews(
    idea_id: UUID,
    service: ReviewService = Depends(get_review_service),
) -> ReviewListResponse:
    return await service.list_reviews(idea_id)


@router.post(
    "/{idea_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Reviews"],
    responses={409: {"model": ErrorResponse, "description": "Already reviewed"}}
)
async def create_review(
    idea_id: UUID,
    payload: ReviewCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    return await service.create_review(current_user, idea_id, payload)


@router.put("/reviews/{review_id}/reply", response_model=ReviewResponse, tags=["Reviews"])
async def reply_to_review(
    review_id: UUID,
    payload: ReviewReply,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """Only the idea's author may reply; the reviewer is notified."""
    return await service.reply_to_review(current_user, review_id, payload.response)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Reviews"])
async def delete_review(
    review_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    await service.delete_review(current_user, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Member library router: saved items, progress tracking, dashboard and comparison.
"""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends

from silent_money.dependencies import get_current_active_user, get_library_service
from silent_money.models.auth import CurrentUser, ErrorResponse
from silent_money.models.community import (
    DashboardResponse, ProgressUpdate, SavedFranchiseResponse, SavedIdeaResponse, ToggleResponse,
)
from silent_money.models.insights import CompareRequest, ComparisonAsset, ComparisonResponse
from silent_money.services.library_service import LibraryService

router = APIRouter(
    prefix="/library",
    tags=["Library"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"}
    }
)


@router.post("/ideas/{idea_id}", response_model=ToggleResponse, summary="Save or unsave an idea")
async def toggle_saved_idea(
    idea_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> ToggleResponse:
    return await service.toggle_saved_idea(current_user, idea_id)


@router.post("/franchises/{franchise_id}", response_model=ToggleResponse, summary="Save or unsave a franchise")
async def toggle_saved_franchise(
    franchise_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> ToggleResponse:
    return await service.toggle_saved_franchise(current_user, franchise_id)


@router.put("/ideas/{idea_id}/progress", summary="Track progress on a saved idea")
async def update_progress(
    idea_id: UUID,
    payload: ProgressUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> Dict[str, Any]:
    return await service.update_progress(current_user, idea_id, payload)


@router.get("/ideas", response_model=List[SavedIdeaResponse])
async def list_saved_ideas(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> List[SavedIdeaResponse]:
    return await service.list_saved_ideas(current_user)


@router.get("/franchises", response_model=List[SavedFranchiseResponse])
async def list_saved_franchises(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> List[SavedFranchiseResponse]:
    return await service.list_saved_franchises(current_user)


@router.get("/dashboard", response_model=DashboardResponse, summary="Member dashboard")
async def dashboard(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> DashboardResponse:
    return await service.dashboard(current_user)


@router.get("/compare/candidates", response_model=List[ComparisonAsset])
async def comparison_candidates(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> List[ComparisonAsset]:
    return await service.comparison_candidates(current_user)


@router.post(
    "/compare",
    response_model=ComparisonResponse,
    summary="Compare up to three saved assets",
    responses={422: {"model": ErrorResponse, "description": "Too many assets selected"}}
)
async def compare(
    payload: CompareRequest,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: LibraryService = Depends(get_library_service),
) -> ComparisonResponse:
    return await service.compare(current_user, payload.keys)

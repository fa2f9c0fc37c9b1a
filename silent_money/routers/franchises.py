"""Franchise directory router."""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from silent_money.dependencies import (
    PaginationParams,
    get_current_active_user,
    get_franchise_service,
    get_optional_user,
)
from silent_money.models.auth import CurrentUser, ErrorResponse
from silent_money.models.catalog import (
    FranchiseCreate, FranchiseListResponse, FranchiseResponse, FranchiseUpdate,
)
from silent_money.services.catalog_service import FranchiseService

router = APIRouter(
    prefix="/franchises",
    tags=["Franchises"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        404: {"model": ErrorResponse, "description": "Not Found"}
    }
)


@router.get("", response_model=FranchiseListResponse, summary="Browse approved franchises")
async def list_franchises(
    category: Optional[str] = Query(None, description="Sector label"),
    max_investment: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=100, description="Name or description contains"),
    page: PaginationParams = Depends(),
    service: FranchiseService = Depends(get_franchise_service),
) -> FranchiseListResponse:
    """Verified brands first, then newest."""
    return await service.list_franchises(category, max_investment, search, page.limit, page.offset)


@router.get("/mine", response_model=List[FranchiseResponse])
async def my_franchises(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: FranchiseService = Depends(get_franchise_service),
) -> List[FranchiseResponse]:
    return await service.list_mine(current_user)


@router.post("", response_model=FranchiseResponse, status_code=status.HTTP_201_CREATED)
async def create_franchise(
    payload: FranchiseCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: FranchiseService = Depends(get_franchise_service),
) -> FranchiseResponse:
    return await service.create_franchise(current_user, payload)


@router.get("/{slug}", response_model=FranchiseResponse)
async def get_franchise(
    slug: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
    service: FranchiseService = Depends(get_franchise_service),
) -> FranchiseResponse:
    return await service.get_by_slug(slug, viewer)


@router.put("/{franchise_id}", response_model=FranchiseResponse)
async def update_franchise(
    franchise_id: UUID,
    payload: FranchiseUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: FranchiseService = Depends(get_franchise_service),
) -> FranchiseResponse:
    return await service.update_franchise(current_user, franchise_id, payload)


@router.delete("/{franchise_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_franchise(
    franchise_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: FranchiseService = Depends(get_franchise_service),
) -> Response:
    await service.delete(current_user, franchise_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

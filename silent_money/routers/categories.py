"""Category taxonomy for ideas and franchises."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from silent_money.dependencies import get_category_service
from silent_money.middleware.rbac import require_permission
from silent_money.models.auth import CurrentUser, ErrorResponse, Permission
from silent_money.models.catalog import CategoryCreate, CategoryResponse, CategoryType, CategoryUpdate
from silent_money.services.category_service import CategoryService

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
    responses={
        403: {"model": ErrorResponse, "description": "Forbidden"},
        409: {"model": ErrorResponse, "description": "Conflict"}
    }
)


@router.get("", response_model=List[CategoryResponse], summary="List categories")
async def list_categories(
    type: Optional[CategoryType] = Query(None, description="Restrict to idea or franchise categories"),
    service: CategoryService = Depends(get_category_service),
) -> List[CategoryResponse]:
    return await service.list_categories(type)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    admin: CurrentUser = Depends(require_permission(Permission.MANAGE_CATEGORIES)),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await service.create_category(admin, payload)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    admin: CurrentUser = Depends(require_permission(Permission.MANAGE_CATEGORIES)),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await service.update_category(admin, category_id, payload)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    admin: CurrentUser = Depends(require_permission(Permission.MANAGE_CATEGORIES)),
    service: CategoryService = Depends(get_category_service),
) -> Response:
    await service.delete_category(admin, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

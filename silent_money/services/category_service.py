"""
Category taxonomy for ideas and franchises.
"""

import structlog
from typing import List, Optional
from uuid import UUID

from silent_money.exceptions import InvalidStateError, NotFoundError
from silent_money.models.audit import AdminActionType, TargetType
from silent_money.models.auth import CurrentUser
from silent_money.models.catalog import CategoryCreate, CategoryResponse, CategoryType, CategoryUpdate
from silent_money.repositories.category_repo import CategoryRepository
from silent_money.services.activity import ActivityRecorder
from silent_money.utils.slugs import name_slug

logger = structlog.get_logger(__name__)


class CategoryService:
    """Listing for everyone; create, update and delete for admins."""

    def __init__(self, category_repo: CategoryRepository, activity: ActivityRecorder):
        self.category_repo = category_repo
        self.activity = activity

    async def list_categories(self, category_type: Optional[CategoryType] = None) -> List[CategoryResponse]:
        rows = await self.category_repo.list_categories(category_type.value if category_type else None)
        return [CategoryResponse(**row) for row in rows]

    async def create_category(self, admin: CurrentUser, payload: CategoryCreate) -> CategoryResponse:
        """
        Raises:
            InvalidStateError: No usable slug can be derived from the name
            ConflictError: Name or slug already taken
        """
        slug = payload.slug or name_slug(payload.name)
        if not slug:
            raise InvalidStateError("Category slug cannot be empty")

        row = await self.category_repo.create_category(
            name=payload.name,
            slug=slug,
            category_type=payload.type.value,
            icon=payload.icon,
            description=payload.description,
            display_order=payload.display_order,
        )
        await self.activity.log_admin_action(
            admin.id, AdminActionType.CATEGORY_CREATE, TargetType.CATEGORY, row["id"],
            {"name": row["name"], "slug": row["slug"]}
        )
        return CategoryResponse(**row)

    async def update_category(self, admin: CurrentUser, category_id: UUID, payload: CategoryUpdate) -> CategoryResponse:
        fields = payload.model_dump(exclude_unset=True)
        row = await self.category_repo.update_category(category_id, fields)
        if not row:
            raise NotFoundError("Category not found")
        await self.activity.log_admin_action(
            admin.id, AdminActionType.CATEGORY_UPDATE, TargetType.CATEGORY, category_id,
            {"fields": sorted(fields)}
        )
        return CategoryResponse(**row)

    async def delete_category(self, admin: CurrentUser, category_id: UUID) -> None:
        if not await self.category_repo.delete_category(category_id):
            raise NotFoundError("Category not found")
        await self.activity.log_admin_action(
            admin.id, AdminActionType.CATEGORY_DELETE, TargetType.CATEGORY, category_id
        )

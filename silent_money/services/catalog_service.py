"""
Income idea and franchise catalog.

Provides:
- Public browsing with the approved/not-deleted visibility rule
- Submission, edit (re-enters moderation) and soft delete by the author
- Upvotes on ideas
- Change events for the admin moderation feed
"""

import structlog
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Type
from uuid import UUID, uuid4

from pydantic import BaseModel

from silent_money.exceptions import NotFoundError, PermissionDeniedError, SilentMoneyError
from silent_money.models.auth import CurrentUser
from silent_money.models.catalog import (
    AssetType, FranchiseCreate, FranchiseListResponse, FranchiseResponse,
    FranchiseUpdate, IdeaCreate, IdeaFilter, IdeaListResponse, IdeaResponse,
    IdeaUpdate, VoteResponse,
)
from silent_money.repositories.asset_repo import AssetRepository
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.library_repo import LibraryRepository
from silent_money.services.realtime import ChangeEvent, ChangeFeed, ChangeType
from silent_money.utils.slugs import idea_slug, name_slug
from shared.metrics import PlatformMetrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)


def is_publicly_visible(row: Dict[str, Any]) -> bool:
    return bool(row["is_approved"]) and row["deleted_at"] is None


def can_view(row: Dict[str, Any], viewer: Optional[CurrentUser]) -> bool:
    """
    Whether a viewer may open an asset's detail page.

    Everyone sees approved, non-deleted rows. The author also sees their
    own pending or revision rows; staff see everything.
    """
    if is_publicly_visible(row):
        return True
    if viewer is None:
        return False
    if viewer.is_admin:
        return True
    return row["author_id"] == viewer.id and row["deleted_at"] is None


class AssetService:
    """
    Behaviour shared by ideas and franchises.

    Subclasses set:
        asset_type: AssetType of the rows
        table: table name used for change events
        title_field: column slugs are derived from
        slugify: slug function for title_field
        reslug_on_rename: regenerate the slug when the title changes
        response_model: pydantic response class
    """

    asset_type: AssetType
    table: str = ""
    title_field: str = "title"
    slugify: Callable[[str], str] = staticmethod(idea_slug)
    reslug_on_rename: bool = False
    response_model: Type[BaseModel]

    def __init__(
        self,
        repo: AssetRepository,
        library_repo: LibraryRepository,
        feed: ChangeFeed,
        storage: Optional[Any] = None,
        metrics: Optional[PlatformMetrics] = None,
    ):
        """
        Args:
            repo: Repository of the asset table
            library_repo: Saved-items repository (for is_saved flags)
            feed: Change feed receiving submission events
            storage: StorageService queuing replaced images for cleanup
            metrics: Platform metrics
        """
        self.repo = repo
        self.library_repo = library_repo
        self.feed = feed
        self.storage = storage
        self.metrics = metrics

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _unique_slug(self, title: str, exclude_id: Optional[UUID] = None) -> str:
        base = type(self).slugify(title) or f"{self.asset_type.value}-{uuid4().hex[:8]}"
        return await self.repo.next_available_slug(base, exclude_id=exclude_id)

    async def _require_owned(self, asset_id: UUID, user: CurrentUser) -> Dict[str, Any]:
        row = await self.repo.get_by_id(asset_id)
        if not row or row["deleted_at"] is not None:
            raise NotFoundError(f"{self.asset_type.value.capitalize()} not found")
        if row["author_id"] != user.id:
            logger.warning(
                "asset_edit_denied",
                asset_type=self.asset_type.value,
                asset_id=str(asset_id),
                user_id=str(user.id)
            )
            raise PermissionDeniedError(f"You can only modify your own {self.asset_type.value}s")
        return row

    def _record_submission(self, kind: str) -> None:
        if self.metrics:
            self.metrics.submissions.labels(asset_type=self.asset_type.value, kind=kind).inc()

    def _publish(self, change: ChangeType, row: Dict[str, Any]) -> None:
        self.feed.publish(ChangeEvent(table=self.table, type=change, new=row))

    async def _is_saved(self, user_id: UUID, asset_id: UUID) -> bool:
        raise NotImplementedError

    async def _decorate(self, row: Dict[str, Any], viewer: Optional[CurrentUser]) -> BaseModel:
        if viewer is None:
            return self.response_model(**row)
        return self.response_model(**row, is_saved=await self._is_saved(viewer.id, row["id"]))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_by_slug(self, slug: str, viewer: Optional[CurrentUser] = None) -> BaseModel:
        """
        Detail view by slug.

        Raises:
            NotFoundError: Missing, or not visible to the viewer
        """
        row = await self.repo.get_by_slug(slug)
        if not row or not can_view(row, viewer):
            raise NotFoundError(f"{self.asset_type.value.capitalize()} not found")
        return await self._decorate(row, viewer)

    @trace_function("catalog.create", expected=(SilentMoneyError,))
    async def create(self, author: CurrentUser, payload: BaseModel) -> BaseModel:
        """Submit a new asset; it waits in the moderation queue."""
        values = payload.model_dump()
        values["slug"] = await self._unique_slug(values[self.title_field])
        values["author_id"] = author.id
        row = await self.repo.insert_asset(values)
        self._record_submission("new")
        self._publish(ChangeType.INSERT, row)
        logger.info(
            "asset_submitted",
            asset_type=self.asset_type.value,
            asset_id=str(row["id"]),
            author_id=str(author.id)
        )
        return self.response_model(**row)

    @trace_function("catalog.update", expected=(SilentMoneyError,))
    async def update(self, author: CurrentUser, asset_id: UUID, payload: BaseModel) -> BaseModel:
        """
        Edit an own asset and send it back to moderation.

        Raises:
            NotFoundError: Missing or deleted
            PermissionDeniedError: Caller is not the author
        """
        current = await self._require_owned(asset_id, author)
        fields = payload.model_dump(exclude_unset=True)

        new_title = fields.get(self.title_field)
        if self.reslug_on_rename and new_title and new_title != current[self.title_field]:
            fields["slug"] = await self._unique_slug(new_title, exclude_id=asset_id)

        row = await self.repo.update_asset(asset_id, fields, resubmit=True)
        if not row:
            raise NotFoundError(f"{self.asset_type.value.capitalize()} not found")

        if self.storage and "image_url" in fields and current["image_url"] != row["image_url"]:
            await self.storage.enqueue_cleanup(current["image_url"])

        self._record_submission("resubmit")
        self._publish(ChangeType.UPDATE, row)
        return self.response_model(**row)

    async def delete(self, author: CurrentUser, asset_id: UUID) -> None:
        """Soft delete an own asset."""
        await self._require_owned(asset_id, author)
        await self.repo.soft_delete(asset_id)
        logger.info(
            "asset_deleted_by_author",
            asset_type=self.asset_type.value,
            asset_id=str(asset_id),
            author_id=str(author.id)
        )

    async def list_mine(self, author: CurrentUser) -> List[BaseModel]:
        """All of the caller's non-deleted assets, any moderation state."""
        rows = await self.repo.list_by_author(author.id)
        return [self.response_model(**row) for row in rows]


class IdeaService(AssetService):
    """Income ideas: browsing, submissions and upvotes."""

    asset_type = AssetType.IDEA
    table = "income_ideas"
    title_field = "title"
    slugify = staticmethod(idea_slug)
    reslug_on_rename = True
    response_model = IdeaResponse

    repo: IdeaRepository

    async def _is_saved(self, user_id: UUID, asset_id: UUID) -> bool:
        return await self.library_repo.is_idea_saved(user_id, asset_id)

    async def _decorate(self, row: Dict[str, Any], viewer: Optional[CurrentUser]) -> IdeaResponse:
        if viewer is None:
            return IdeaResponse(**row)
        return IdeaResponse(
            **row,
            has_voted=await self.repo.has_voted(viewer.id, row["id"]),
            is_saved=await self._is_saved(viewer.id, row["id"]),
        )

    async def list_ideas(self, filters: IdeaFilter, limit: int = 20, offset: int = 0) -> IdeaListResponse:
        rows, total = await self.repo.list_public(
            category=filters.category,
            min_income=filters.min_income,
            search=filters.search,
            sort=filters.sort.value,
            featured_only=filters.featured_only,
            limit=limit,
            offset=offset,
        )
        return IdeaListResponse(
            items=[IdeaResponse(**row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def create_idea(self, author: CurrentUser, payload: IdeaCreate) -> IdeaResponse:
        return await self.create(author, payload)

    async def update_idea(self, author: CurrentUser, idea_id: UUID, payload: IdeaUpdate) -> IdeaResponse:
        return await self.update(author, idea_id, payload)

    @trace_function("ideas.toggle_vote", expected=(SilentMoneyError,))
    async def toggle_vote(self, user: CurrentUser, idea_id: UUID) -> VoteResponse:
        """
        Add or remove the caller's upvote.

        Raises:
            NotFoundError: Idea missing or not public
        """
        row = await self.repo.get_by_id(idea_id)
        if not row or not is_publicly_visible(row):
            raise NotFoundError("Idea not found")

        voted, count = await self.repo.toggle_vote(user.id, idea_id)
        if self.metrics:
            self.metrics.engagement.labels(action="vote" if voted else "unvote").inc()
        logger.info("idea_vote_toggled", idea_id=str(idea_id), user_id=str(user.id), voted=voted)
        return VoteResponse(voted=voted, upvotes_count=count)


class FranchiseService(AssetService):
    """Franchise brands: browsing and submissions."""

    asset_type = AssetType.FRANCHISE
    table = "franchises"
    title_field = "name"
    slugify = staticmethod(name_slug)
    reslug_on_rename = False
    response_model = FranchiseResponse

    repo: FranchiseRepository

    async def _is_saved(self, user_id: UUID, asset_id: UUID) -> bool:
        return await self.library_repo.is_franchise_saved(user_id, asset_id)

    async def list_franchises(
        self,
        category: Optional[str] = None,
        max_investment: Optional[Decimal] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> FranchiseListResponse:
        rows, total = await self.repo.list_public(
            category=category,
            max_investment=max_investment,
            search=search,
            limit=limit,
            offset=offset,
        )
        return FranchiseListResponse(
            items=[FranchiseResponse(**row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def create_franchise(self, author: CurrentUser, payload: FranchiseCreate) -> FranchiseResponse:
        return await self.create(author, payload)

    async def update_franchise(
        self,
        author: CurrentUser,
        franchise_id: UUID,
        payload: FranchiseUpdate,
    ) -> FranchiseResponse:
        return await self.update(author, franchise_id, payload)

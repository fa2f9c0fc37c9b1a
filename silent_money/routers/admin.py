"""
Admin router for moderation, user management and maintenance.

Provides REST API endpoints for:
- Dashboard snapshot and live submission stream
- Moderation of ideas and franchises (single and bulk)
- Asset audit trails
- User administration and CSV export
- Admin log browsing
- Storage cleanup queue

Every endpoint requires a staff permission; state-changing actions are
recorded in the admin log.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response, StreamingResponse

from silent_money.config import Settings
from silent_money.dependencies import (
    PaginationParams,
    get_admin_service,
    get_change_feed,
    get_metrics,
    get_settings_dependency,
    get_storage_service,
)
from silent_money.middleware.rbac import require_permission
from silent_money.models.audit import (
    AdminAssetListResponse, AdminDashboardResponse, AdminLogFilter, AdminLogListResponse,
    AdminUserEntry, AdminUserListResponse, AssetAuditEntry, AssetState, BulkActionRequest,
    BulkActionResult, CleanupItem, FeatureRequest, PurgeResult, RevisionRequest, TargetType,
    VerifyRequest,
)
from silent_money.models.auth import CurrentUser, ErrorResponse, Permission
from silent_money.models.catalog import AssetType, FranchiseResponse, IdeaResponse
from silent_money.routers.sse import stream_response
from silent_money.services.admin_service import AdminService
from silent_money.services.audit_request_service import AUDIT_REQUESTS_TABLE
from silent_money.services.catalog_service import FranchiseService, IdeaService
from silent_money.services.realtime import ChangeFeed, ChangeType
from silent_money.services.storage_service import StorageService
from shared.metrics import PlatformMetrics

router = APIRouter(
    prefix="/admin",
    tags=["Administration"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        404: {"model": ErrorResponse, "description": "Not Found"}
    }
)

ADMIN_STREAM_TABLES = [IdeaService.table, FranchiseService.table, AUDIT_REQUESTS_TABLE]
# New submissions only; edits and moderation changes stay off the stream
ADMIN_STREAM_TYPES = [ChangeType.INSERT]

view_dashboard = require_permission(Permission.VIEW_ADMIN_DASHBOARD)
moderate = require_permission(Permission.MODERATE_ASSETS)
manage_users = require_permission(Permission.MANAGE_USERS)
manage_admins = require_permission(Permission.MANAGE_ADMINS)
view_logs = require_permission(Permission.VIEW_ADMIN_LOGS)
manage_storage = require_permission(Permission.MANAGE_STORAGE)


def asset_response(asset_type: AssetType, row: Dict[str, Any]) -> Union[IdeaResponse, FranchiseResponse]:
    if asset_type is AssetType.IDEA:
        return IdeaResponse(**row)
    return FranchiseResponse(**row)


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard", response_model=AdminDashboardResponse, summary="Moderation console snapshot")
async def dashboard(
    admin: CurrentUser = Depends(view_dashboard),
    service: AdminService = Depends(get_admin_service),
) -> AdminDashboardResponse:
    return await service.dashboard()


@router.get("/stream", summary="Live submissions and audit requests (SSE)")
async def stream(
    request: Request,
    admin: CurrentUser = Depends(view_dashboard),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings_dependency),
    metrics: PlatformMetrics = Depends(get_metrics),
) -> StreamingResponse:
    return stream_response(
        request,
        feed,
        ADMIN_STREAM_TABLES,
        stream_name="admin",
        heartbeat_seconds=settings.realtime_heartbeat_seconds,
        metrics=metrics,
        types=ADMIN_STREAM_TYPES,
    )


# ============================================================================
# MODERATION
# ============================================================================


@router.post("/assets/bulk", response_model=BulkActionResult, summary="Approve or archive many assets")
async def bulk(
    payload: BulkActionRequest,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> BulkActionResult:
    return await service.bulk(admin, payload)


@router.get("/assets/{asset_type}", response_model=AdminAssetListResponse)
async def list_assets(
    asset_type: AssetType,
    state: AssetState = Query(AssetState.PENDING),
    search: Optional[str] = Query(None, max_length=100),
    page: PaginationParams = Depends(),
    admin: CurrentUser = Depends(view_dashboard),
    service: AdminService = Depends(get_admin_service),
) -> AdminAssetListResponse:
    return await service.list_assets(asset_type, state, search, page.limit, page.offset)


@router.post("/assets/{asset_type}/{asset_id}/approve", response_model=None)
async def approve(
    asset_type: AssetType,
    asset_id: UUID,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> Union[IdeaResponse, FranchiseResponse]:
    """Publish the asset and notify its author."""
    return asset_response(asset_type, await service.approve(admin, asset_type, asset_id))


@router.post("/assets/{asset_type}/{asset_id}/revision", response_model=None)
async def request_revision(
    asset_type: AssetType,
    asset_id: UUID,
    payload: RevisionRequest,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> Union[IdeaResponse, FranchiseResponse]:
    """Send the asset back to its author with feedback."""
    row = await service.request_revision(admin, asset_type, asset_id, payload.feedback)
    return asset_response(asset_type, row)


@router.post("/assets/{asset_type}/{asset_id}/archive", response_model=None)
async def archive(
    asset_type: AssetType,
    asset_id: UUID,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> Union[IdeaResponse, FranchiseResponse]:
    return asset_response(asset_type, await service.archive(admin, asset_type, asset_id))


@router.post("/assets/{asset_type}/{asset_id}/restore", response_model=None)
async def restore(
    asset_type: AssetType,
    asset_id: UUID,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> Union[IdeaResponse, FranchiseResponse]:
    return asset_response(asset_type, await service.restore(admin, asset_type, asset_id))


@router.put("/assets/{asset_type}/{asset_id}/featured", response_model=None)
async def set_featured(
    asset_type: AssetType,
    asset_id: UUID,
    payload: FeatureRequest,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> Union[IdeaResponse, FranchiseResponse]:
    row = await service.set_featured(admin, asset_type, asset_id, payload.featured)
    return asset_response(asset_type, row)


@router.get("/assets/{asset_type}/{asset_id}/audit-trail", response_model=List[AssetAuditEntry])
async def asset_audit_trail(
    asset_type: AssetType,
    asset_id: UUID,
    admin: CurrentUser = Depends(view_dashboard),
    service: AdminService = Depends(get_admin_service),
) -> List[AssetAuditEntry]:
    return await service.asset_audit_trail(asset_type, asset_id)


@router.put("/franchises/{franchise_id}/verified", response_model=FranchiseResponse)
async def verify_franchise(
    franchise_id: UUID,
    payload: VerifyRequest,
    admin: CurrentUser = Depends(moderate),
    service: AdminService = Depends(get_admin_service),
) -> FranchiseResponse:
    return FranchiseResponse(**await service.verify_franchise(admin, franchise_id, payload.verified))


# ============================================================================
# USERS
# ============================================================================


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    page: PaginationParams = Depends(),
    admin: CurrentUser = Depends(manage_users),
    service: AdminService = Depends(get_admin_service),
) -> AdminUserListResponse:
    return await service.list_users(search, page.limit, page.offset)


@router.get("/users/export", summary="Download all profiles as CSV")
async def export_users(
    admin: CurrentUser = Depends(manage_users),
    service: AdminService = Depends(get_admin_service),
) -> Response:
    content = await service.export_users_csv(admin)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users.csv"'},
    )


@router.post(
    "/users/{user_id}/ban",
    response_model=AdminUserEntry,
    description="Owners and the acting admin cannot be banned."
)
async def ban_user(
    user_id: UUID,
    admin: CurrentUser = Depends(manage_users),
    service: AdminService = Depends(get_admin_service),
) -> AdminUserEntry:
    return await service.set_banned(admin, user_id, True)


@router.post("/users/{user_id}/unban", response_model=AdminUserEntry)
async def unban_user(
    user_id: UUID,
    admin: CurrentUser = Depends(manage_users),
    service: AdminService = Depends(get_admin_service),
) -> AdminUserEntry:
    return await service.set_banned(admin, user_id, False)


@router.post("/users/{user_id}/toggle-admin", response_model=AdminUserEntry)
async def toggle_admin(
    user_id: UUID,
    admin: CurrentUser = Depends(manage_admins),
    service: AdminService = Depends(get_admin_service),
) -> AdminUserEntry:
    return await service.toggle_admin(admin, user_id)


# ============================================================================
# LOGS AND MAINTENANCE
# ============================================================================


@router.get("/logs", response_model=AdminLogListResponse)
async def list_admin_logs(
    action_type: Optional[str] = Query(None, max_length=50),
    target_type: Optional[TargetType] = Query(None),
    admin_id: Optional[UUID] = Query(None),
    target_id: Optional[UUID] = Query(None),
    page: PaginationParams = Depends(),
    admin: CurrentUser = Depends(view_logs),
    service: AdminService = Depends(get_admin_service),
) -> AdminLogListResponse:
    filters = AdminLogFilter(
        action_type=action_type,
        target_type=target_type,
        admin_id=admin_id,
        target_id=target_id,
    )
    return await service.list_admin_logs(filters, page.limit, page.offset)


@router.get("/storage/cleanup-queue", response_model=List[CleanupItem])
async def list_cleanup_queue(
    admin: CurrentUser = Depends(manage_storage),
    storage: StorageService = Depends(get_storage_service),
) -> List[CleanupItem]:
    return await storage.list_cleanup_queue()


@router.post("/storage/purge", response_model=PurgeResult, summary="Delete queued objects")
async def purge_storage(
    admin: CurrentUser = Depends(manage_storage),
    service: AdminService = Depends(get_admin_service),
) -> PurgeResult:
    """Idempotent; objects that fail to delete stay queued."""
    return await service.purge_storage(admin)

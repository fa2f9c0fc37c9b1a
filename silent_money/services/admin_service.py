"""
Administrative moderation console.

Provides:
- Dashboard snapshot (queue, history, audits, stats, user growth)
- Moderation: approve, request revision, archive, restore, feature, verify, bulk
- Asset audit trails
- User administration: ban, unban, admin flag, CSV export
- Admin log browsing
- Storage cleanup purge

Every state-changing operation records an admin log entry through
ActivityRecorder; recording failures never fail the operation.
"""

import csv
import io
import structlog
from typing import Any, Dict, List, Optional
from uuid import UUID

from silent_money.config import Settings, get_settings
from silent_money.exceptions import NotFoundError, SilentMoneyError
from silent_money.models.audit import (
    AdminActionType, AdminAssetListResponse, AdminDashboardResponse, AdminLogEntry,
    AdminLogFilter, AdminLogListResponse, AdminUserEntry, AdminUserListResponse,
    AssetAuditAction, AssetAuditEntry, AssetState, BulkAction, BulkActionRequest,
    BulkActionResult, BulkFailure, DashboardStats, GrowthPoint, PendingAssets,
    PurgeResult, TargetType,
)
from silent_money.models.auth import CurrentUser, Role
from silent_money.models.catalog import AssetType, FranchiseResponse, IdeaResponse
from silent_money.models.community import AuditRequestResponse, AuditRequestStatus, NotificationType
from silent_money.repositories.admin_log_repo import AdminLogRepository
from silent_money.repositories.asset_repo import AssetRepository
from silent_money.repositories.audit_request_repo import AuditRequestRepository
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.profile_repo import ProfileRepository
from silent_money.services.activity import ActivityRecorder
from silent_money.services.notification_service import NotificationService
from silent_money.services.storage_service import StorageService
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

USER_CSV_COLUMNS = ["id", "full_name", "role", "is_admin", "is_banned", "created_at"]


def public_link(asset_type: AssetType, slug: str) -> str:
    if asset_type is AssetType.IDEA:
        return f"/ideas/{slug}"
    return f"/franchise/{slug}"


def asset_title(row: Dict[str, Any]) -> str:
    return row.get("title") or row.get("name") or ""


class AdminService:
    """Service behind the /admin routes."""

    def __init__(
        self,
        idea_repo: IdeaRepository,
        franchise_repo: FranchiseRepository,
        profile_repo: ProfileRepository,
        audit_repo: AuditRequestRepository,
        admin_log_repo: AdminLogRepository,
        notifications: NotificationService,
        activity: ActivityRecorder,
        storage: StorageService,
        settings: Optional[Settings] = None,
    ):
        self.idea_repo = idea_repo
        self.franchise_repo = franchise_repo
        self.profile_repo = profile_repo
        self.audit_repo = audit_repo
        self.admin_log_repo = admin_log_repo
        self.notifications = notifications
        self.activity = activity
        self.storage = storage
        self.settings = settings or get_settings()

    def _repo(self, asset_type: AssetType) -> AssetRepository:
        return self.idea_repo if asset_type is AssetType.IDEA else self.franchise_repo

    async def _require_asset(self, asset_type: AssetType, asset_id: UUID) -> Dict[str, Any]:
        row = await self._repo(asset_type).get_by_id(asset_id)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")
        return row

    @staticmethod
    def _target(asset_type: AssetType) -> TargetType:
        return TargetType(asset_type.value)

    # ========================================================================
    # Dashboard
    # ========================================================================

    @trace_function("admin.dashboard", expected=(SilentMoneyError,))
    async def dashboard(self) -> AdminDashboardResponse:
        """Single snapshot of everything the console's overview shows."""
        page = self.settings.admin_page_size
        history_limit = self.settings.admin_history_limit

        pending_ideas, pending_idea_total = await self.idea_repo.list_for_admin("pending", limit=page)
        pending_franchises, pending_franchise_total = await self.franchise_repo.list_for_admin("pending", limit=page)
        approved_ideas, approved_idea_total = await self.idea_repo.list_for_admin("approved", limit=history_limit)
        approved_franchises, approved_franchise_total = await self.franchise_repo.list_for_admin(
            "approved", limit=history_limit
        )
        audits = await self.audit_repo.list_all(limit=page)
        pending_audits = await self.audit_repo.count_by_status(AuditRequestStatus.PENDING.value)
        total_users = await self.profile_repo.count_profiles()
        growth = await self.profile_repo.daily_signups(self.settings.admin_growth_days)

        return AdminDashboardResponse(
            stats=DashboardStats(
                pending_ideas=pending_idea_total,
                pending_franchises=pending_franchise_total,
                pending_audits=pending_audits,
                total_users=total_users,
                approved_ideas=approved_idea_total,
                approved_franchises=approved_franchise_total,
            ),
            pending=PendingAssets(
                ideas=[IdeaResponse(**row) for row in pending_ideas],
                franchises=[FranchiseResponse(**row) for row in pending_franchises],
            ),
            history=PendingAssets(
                ideas=[IdeaResponse(**row) for row in approved_ideas],
                franchises=[FranchiseResponse(**row) for row in approved_franchises],
            ),
            audits=[AuditRequestResponse(**row) for row in audits],
            growth=[GrowthPoint(day=day, new_users=count) for day, count in growth],
        )

    async def list_assets(
        self,
        asset_type: AssetType,
        state: AssetState = AssetState.PENDING,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> AdminAssetListResponse:
        rows, total = await self._repo(asset_type).list_for_admin(state.value, search, limit, offset)
        response = AdminAssetListResponse(asset_type=asset_type, total=total, limit=limit, offset=offset)
        if asset_type is AssetType.IDEA:
            response.ideas = [IdeaResponse(**row) for row in rows]
        else:
            response.franchises = [FranchiseResponse(**row) for row in rows]
        return response

    # ========================================================================
    # Moderation
    # ========================================================================

    @trace_function("admin.approve", expected=(SilentMoneyError,))
    async def approve(self, admin: CurrentUser, asset_type: AssetType, asset_id: UUID) -> Dict[str, Any]:
        """
        Publish an asset and tell its author.

        Raises:
            NotFoundError: Asset missing
        """
        row = await self._repo(asset_type).set_approved(asset_id)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")

        if row["author_id"]:
            noun = "blueprint" if asset_type is AssetType.IDEA else "franchise"
            await self.notifications.notify(
                user_id=row["author_id"],
                title="Asset Approved 🚀",
                message=f'Your {noun} "{asset_title(row)}" has been verified and is now live.',
                notification_type=NotificationType.APPROVAL,
                link=public_link(asset_type, row["slug"]),
            )

        await self.activity.log_asset_event(
            asset_type.value, asset_id, AssetAuditAction.AUTHORIZATION, admin.id
        )
        await self.activity.log_admin_action(
            admin.id, AdminActionType.APPROVE, self._target(asset_type), asset_id,
            {"title": asset_title(row)}
        )
        return row

    async def request_revision(
        self,
        admin: CurrentUser,
        asset_type: AssetType,
        asset_id: UUID,
        feedback: str,
    ) -> Dict[str, Any]:
        """
        Send an asset back to its author with feedback.

        Raises:
            NotFoundError: Asset missing
        """
        feedback = feedback.strip()
        row = await self._repo(asset_type).set_revision(asset_id, feedback)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")

        if row["author_id"]:
            await self.notifications.notify(
                user_id=row["author_id"],
                title="Action Required: Asset Revision 📝",
                message=f'Feedback for "{asset_title(row)}": {feedback}',
                notification_type=NotificationType.SYSTEM,
                link="/my-ideas",
            )

        await self.activity.log_asset_event(
            asset_type.value, asset_id, AssetAuditAction.REVISION_REQUEST, admin.id, feedback
        )
        await self.activity.log_admin_action(
            admin.id, AdminActionType.REVISION, self._target(asset_type), asset_id,
            {"title": asset_title(row), "feedback": feedback}
        )
        return row

    async def archive(self, admin: CurrentUser, asset_type: AssetType, asset_id: UUID) -> Dict[str, Any]:
        """Soft delete an asset and queue its image for cleanup."""
        current = await self._require_asset(asset_type, asset_id)
        row = await self._repo(asset_type).soft_delete(asset_id)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")

        if current["deleted_at"] is None:
            await self.storage.enqueue_cleanup(current["image_url"])

        await self.activity.log_asset_event(
            asset_type.value, asset_id, AssetAuditAction.DECOMMISSION, admin.id
        )
        await self.activity.log_admin_action(
            admin.id, AdminActionType.ARCHIVE, self._target(asset_type), asset_id,
            {"title": asset_title(row)}
        )
        return row

    async def restore(self, admin: CurrentUser, asset_type: AssetType, asset_id: UUID) -> Dict[str, Any]:
        row = await self._repo(asset_type).restore(asset_id)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")

        await self.activity.log_asset_event(
            asset_type.value, asset_id, AssetAuditAction.STATUS_CHANGE, admin.id, "restored"
        )
        await self.activity.log_admin_action(
            admin.id, AdminActionType.RESTORE, self._target(asset_type), asset_id,
            {"title": asset_title(row)}
        )
        return row

    async def set_featured(
        self,
        admin: CurrentUser,
        asset_type: AssetType,
        asset_id: UUID,
        featured: bool,
    ) -> Dict[str, Any]:
        row = await self._repo(asset_type).set_featured(asset_id, featured)
        if not row:
            raise NotFoundError(f"{asset_type.value.capitalize()} not found")

        action = AdminActionType.FEATURE if featured else AdminActionType.UNFEATURE
        await self.activity.log_admin_action(
            admin.id, action, self._target(asset_type), asset_id, {"title": asset_title(row)}
        )
        return row

    async def verify_franchise(self, admin: CurrentUser, franchise_id: UUID, verified: bool) -> Dict[str, Any]:
        row = await self.franchise_repo.set_verified(franchise_id, verified)
        if not row:
            raise NotFoundError("Franchise not found")

        action = AdminActionType.VERIFY if verified else AdminActionType.UNVERIFY
        await self.activity.log_admin_action(
            admin.id, action, TargetType.FRANCHISE, franchise_id, {"name": row["name"]}
        )
        return row

    async def bulk(self, admin: CurrentUser, request: BulkActionRequest) -> BulkActionResult:
        """
        Apply approve or archive to each item independently.

        One item failing does not stop the others; failures are reported
        per item.
        """
        result = BulkActionResult(action=request.action)
        operation = self.approve if request.action is BulkAction.APPROVE else self.archive

        for item in request.items:
            try:
                await operation(admin, item.asset_type, item.id)
            except SilentMoneyError as e:
                result.failed.append(BulkFailure(id=item.id, error=e.detail))
                continue
            except Exception as e:
                logger.error("bulk_item_failed", action=request.action.value, asset_id=str(item.id), error=str(e))
                result.failed.append(BulkFailure(id=item.id, error="Unexpected error"))
                continue
            result.succeeded.append(item.id)

        logger.info(
            "bulk_action_completed",
            action=request.action.value,
            succeeded=len(result.succeeded),
            failed=len(result.failed)
        )
        return result

    async def asset_audit_trail(self, asset_type: AssetType, asset_id: UUID) -> List[AssetAuditEntry]:
        rows = await self.admin_log_repo.list_asset_events(asset_type.value, asset_id)
        return [AssetAuditEntry(**row) for row in rows]

    # ========================================================================
    # Users
    # ========================================================================

    async def list_users(self, search: Optional[str] = None, limit: int = 20, offset: int = 0) -> AdminUserListResponse:
        rows, total = await self.profile_repo.list_profiles(search, limit, offset)
        return AdminUserListResponse(
            items=[AdminUserEntry(**row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def _require_profile(self, user_id: UUID) -> Dict[str, Any]:
        target = await self.profile_repo.get_by_id(user_id)
        if not target:
            raise NotFoundError("User not found")
        return target

    async def set_banned(self, admin: CurrentUser, user_id: UUID, banned: bool) -> AdminUserEntry:
        """
        Ban or unban a member.

        Raises:
            NotFoundError: User missing
            PermissionDeniedError: Target is an owner or the acting admin
        """
        from silent_money.middleware.rbac import ensure_can_manage_target

        target = await self._require_profile(user_id)
        ensure_can_manage_target(admin, target)

        row = await self.profile_repo.set_banned(user_id, banned)
        action = AdminActionType.BAN if banned else AdminActionType.UNBAN
        await self.activity.log_admin_action(
            admin.id, action, TargetType.USER, user_id, {"email": target["email"]}
        )
        return AdminUserEntry(**row)

    async def toggle_admin(self, admin: CurrentUser, user_id: UUID) -> AdminUserEntry:
        """Flip the admin flag; granting sets role admin, revoking sets role user."""
        from silent_money.middleware.rbac import ensure_can_manage_target

        target = await self._require_profile(user_id)
        ensure_can_manage_target(admin, target)

        is_admin = not target["is_admin"]
        role = Role.ADMIN if is_admin else Role.USER
        row = await self.profile_repo.set_admin(user_id, is_admin, role.value)
        await self.activity.log_admin_action(
            admin.id, AdminActionType.TOGGLE_ADMIN, TargetType.USER, user_id,
            {"is_admin": is_admin, "role": role.value}
        )
        return AdminUserEntry(**row)

    async def export_users_csv(self, admin: CurrentUser) -> str:
        """All profiles as CSV, oldest first."""
        rows = await self.profile_repo.list_all()
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=USER_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({
                **row,
                "created_at": row["created_at"].isoformat() if row["created_at"] else "",
            })

        await self.activity.log_admin_action(
            admin.id, AdminActionType.USERS_EXPORT, TargetType.USER, None, {"count": len(rows)}
        )
        return buffer.getvalue()

    # ========================================================================
    # Logs and maintenance
    # ========================================================================

    async def list_admin_logs(self, filter: AdminLogFilter, limit: int = 20, offset: int = 0) -> AdminLogListResponse:
        rows, total = await self.admin_log_repo.list_admin_logs(filter, limit, offset)
        return AdminLogListResponse(
            items=[AdminLogEntry(**row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def purge_storage(self, admin: CurrentUser) -> PurgeResult:
        result = await self.storage.purge_cleanup_queue()
        await self.activity.log_admin_action(
            admin.id, AdminActionType.STORAGE_PURGE, TargetType.STORAGE, None,
            result.model_dump()
        )
        return result

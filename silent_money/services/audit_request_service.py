"""
Expert franchise audit requests.

Members ask for an expert review of a franchise brand; admins move the
request through in-review to completed and the requester is notified.
"""

import structlog
from typing import List, Optional
from uuid import UUID

from silent_money.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError, SilentMoneyError
from silent_money.models.audit import AdminActionType, TargetType
from silent_money.models.auth import CurrentUser
from silent_money.models.community import (
    AuditRequestCreate, AuditRequestResponse, AuditRequestStatus, AuditStatusUpdate,
    NotificationType,
)
from silent_money.repositories.audit_request_repo import AuditRequestRepository
from silent_money.services.activity import ActivityRecorder
from silent_money.services.notification_service import NotificationService
from silent_money.services.realtime import ChangeEvent, ChangeFeed, ChangeType
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

AUDIT_REQUESTS_TABLE = "expert_audit_requests"
IN_REVIEW_DEFAULT_FEEDBACK = "Your audit request is currently being analyzed by our expert panel."


class AuditRequestService:
    def __init__(
        self,
        audit_repo: AuditRequestRepository,
        notifications: NotificationService,
        activity: ActivityRecorder,
        feed: ChangeFeed,
    ):
        self.audit_repo = audit_repo
        self.notifications = notifications
        self.activity = activity
        self.feed = feed

    @trace_function("audits.create", expected=(SilentMoneyError,))
    async def create_request(self, user: CurrentUser, payload: AuditRequestCreate) -> AuditRequestResponse:
        row = await self.audit_repo.create_request(user.id, payload.model_dump())
        self.feed.publish(ChangeEvent(table=AUDIT_REQUESTS_TABLE, type=ChangeType.INSERT, new=row))
        logger.info("audit_request_created", request_id=str(row["id"]), user_id=str(user.id))
        return AuditRequestResponse(**row)

    async def my_requests(self, user: CurrentUser) -> List[AuditRequestResponse]:
        rows = await self.audit_repo.list_by_user(user.id)
        return [AuditRequestResponse(**row) for row in rows]

    async def cancel_request(self, user: CurrentUser, request_id: UUID) -> AuditRequestResponse:
        """
        Withdraw an own request that nobody has picked up yet.

        Raises:
            NotFoundError: Missing
            PermissionDeniedError: Not the requester
            InvalidStateError: Already in review or finished
        """
        row = await self.audit_repo.get_by_id(request_id)
        if not row:
            raise NotFoundError("Audit request not found")
        if row["user_id"] != user.id:
            raise PermissionDeniedError("You can only cancel your own audit requests")
        if row["status"] != AuditRequestStatus.PENDING.value:
            raise InvalidStateError("Only pending audit requests can be cancelled")

        updated = await self.audit_repo.update_status(request_id, AuditRequestStatus.CANCELLED.value)
        logger.info("audit_request_cancelled", request_id=str(request_id))
        return AuditRequestResponse(**updated)

    async def list_requests(self, status: Optional[AuditRequestStatus] = None, limit: int = 50) -> List[AuditRequestResponse]:
        rows = await self.audit_repo.list_all(status.value if status else None, limit=limit)
        return [AuditRequestResponse(**row) for row in rows]

    @trace_function("audits.update_status", expected=(SilentMoneyError,))
    async def update_status(
        self,
        admin: CurrentUser,
        request_id: UUID,
        payload: AuditStatusUpdate,
    ) -> AuditRequestResponse:
        """
        Move a request through the audit workflow.

        Completing requires feedback and a report URL. Moving to in-review
        without feedback stores the standard in-review message.

        Raises:
            NotFoundError: Missing
            InvalidStateError: Completed without feedback or report URL
        """
        feedback = (payload.admin_feedback or "").strip() or None
        report_url = (payload.report_url or "").strip() or None

        if payload.status is AuditRequestStatus.COMPLETED and not (feedback and report_url):
            raise InvalidStateError("Completing an audit requires feedback and a report URL")
        if payload.status is AuditRequestStatus.IN_REVIEW and not feedback:
            feedback = IN_REVIEW_DEFAULT_FEEDBACK

        row = await self.audit_repo.update_status(request_id, payload.status.value, feedback, report_url)
        if not row:
            raise NotFoundError("Audit request not found")

        if payload.status is AuditRequestStatus.COMPLETED:
            await self.notifications.notify(
                user_id=row["user_id"],
                title="Expert Audit Complete 🚀",
                message=f'Expert analysis for "{row["brand_name"]}" is ready: {feedback[:50]}...',
                notification_type=NotificationType.APPROVAL,
                link="/dashboard",
            )
        elif payload.status is AuditRequestStatus.IN_REVIEW:
            await self.notifications.notify(
                user_id=row["user_id"],
                title="Audit In-Review 🔍",
                message=f'Your audit for "{row["brand_name"]}" has moved to In-Review status.',
                notification_type=NotificationType.SYSTEM,
                link="/dashboard",
            )

        await self.activity.log_admin_action(
            admin.id, AdminActionType.AUDIT_STATUS_UPDATE, TargetType.AUDIT, request_id,
            {"status": payload.status.value, "brand_name": row["brand_name"]}
        )
        return AuditRequestResponse(**row)

"""Expert franchise audit requests."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from silent_money.dependencies import get_audit_request_service, get_current_active_user
from silent_money.middleware.rbac import require_permission
from silent_money.models.auth import CurrentUser, ErrorResponse, Permission
from silent_money.models.community import (
    AuditRequestCreate, AuditRequestResponse, AuditRequestStatus, AuditStatusUpdate,
)
from silent_money.services.audit_request_service import AuditRequestService

router = APIRouter(
    prefix="/audits",
    tags=["Expert Audits"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Invalid transition"}
    }
)


@router.post("", response_model=AuditRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_audit_request(
    payload: AuditRequestCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: AuditRequestService = Depends(get_audit_request_service),
) -> AuditRequestResponse:
    return await service.create_request(current_user, payload)


@router.get("/mine", response_model=List[AuditRequestResponse])
async def my_audit_requests(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: AuditRequestService = Depends(get_audit_request_service),
) -> List[AuditRequestResponse]:
    return await service.my_requests(current_user)


@router.post("/{request_id}/cancel", response_model=AuditRequestResponse)
async def cancel_audit_request(
    request_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: AuditRequestService = Depends(get_audit_request_service),
) -> AuditRequestResponse:
    """Only pending requests can be cancelled."""
    return await service.cancel_request(current_user, request_id)


@router.get("", response_model=List[AuditRequestResponse], summary="All requests (staff)")
async def list_audit_requests(
    status_filter: Optional[AuditRequestStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    admin: CurrentUser = Depends(require_permission(Permission.MANAGE_AUDITS)),
    service: AuditRequestService = Depends(get_audit_request_service),
) -> List[AuditRequestResponse]:
    return await service.list_requests(status_filter, limit)


@router.put("/{request_id}/status", response_model=AuditRequestResponse, summary="Move a request through review")
async def update_audit_status(
    request_id: UUID,
    payload: AuditStatusUpdate,
    admin: CurrentUser = Depends(require_permission(Permission.MANAGE_AUDITS)),
    service: AuditRequestService = Depends(get_audit_request_service),
) -> AuditRequestResponse:
    return await service.update_status(admin, request_id, payload)

"""
Notification inbox router.

The stream endpoint pushes INSERT/UPDATE/DELETE events for the caller's
notifications as server-sent events; clients merge them into the inbox
returned by GET /notifications.
"""

from typing import Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import StreamingResponse

from silent_money.config import Settings
from silent_money.dependencies import (
    get_change_feed,
    get_current_active_user,
    get_metrics,
    get_notification_service,
    get_settings_dependency,
)
from silent_money.models.auth import CurrentUser, ErrorResponse
from silent_money.models.community import NotificationInboxResponse, NotificationResponse
from silent_money.routers.sse import stream_response
from silent_money.services.notification_service import NOTIFICATIONS_TABLE, NotificationService
from silent_money.services.realtime import ChangeFeed
from shared.metrics import PlatformMetrics

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"}
    }
)


@router.get("", response_model=NotificationInboxResponse, summary="Newest notifications and unread count")
async def list_notifications(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationInboxResponse:
    return await service.list_inbox(current_user)


@router.get("/stream", summary="Realtime notification events (SSE)")
async def stream_notifications(
    request: Request,
    current_user: CurrentUser = Depends(get_current_active_user),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings_dependency),
    metrics: PlatformMetrics = Depends(get_metrics),
) -> StreamingResponse:
    return stream_response(
        request,
        feed,
        [NOTIFICATIONS_TABLE],
        stream_name="notifications",
        heartbeat_seconds=settings.realtime_heartbeat_seconds,
        metrics=metrics,
        user_id=current_user.id,
    )


@router.post("/read-all", summary="Mark every notification read")
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> Dict[str, int]:
    return {"updated": await service.mark_all_read(current_user)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    return await service.mark_read(current_user, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUser = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    await service.delete(current_user, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

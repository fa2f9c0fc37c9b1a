"""Server-sent event streaming over the change feed."""

from typing import AsyncIterator, Iterable, Optional
from uuid import UUID

import structlog
from fastapi import Request
from fastapi.responses import StreamingResponse

from silent_money.services.realtime import ChangeFeed, ChangeType
from shared.metrics import PlatformMetrics

logger = structlog.get_logger(__name__)

HEARTBEAT_FRAME = ": keep-alive\n\n"


async def change_event_frames(
    request: Request,
    feed: ChangeFeed,
    tables: Iterable[str],
    user_id: Optional[UUID],
    heartbeat_seconds: float,
    types: Optional[Iterable[ChangeType]] = None,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for matching change events until the client leaves.

    A comment frame is sent whenever no event arrives within the
    heartbeat interval, so proxies keep the connection open.
    """
    async with feed.subscribe(tables, user_id=user_id, types=types) as subscription:
        yield "retry: 5000\n\n"
        while not await request.is_disconnected():
            event = await subscription.get(timeout=heartbeat_seconds)
            if event is None:
                yield HEARTBEAT_FRAME
            else:
                yield event.to_sse()


def stream_response(
    request: Request,
    feed: ChangeFeed,
    tables: Iterable[str],
    stream_name: str,
    heartbeat_seconds: float,
    metrics: Optional[PlatformMetrics] = None,
    user_id: Optional[UUID] = None,
    types: Optional[Iterable[ChangeType]] = None,
) -> StreamingResponse:
    async def frames() -> AsyncIterator[str]:
        if metrics:
            metrics.realtime_subscribers.labels(stream=stream_name).inc()
        try:
            async for frame in change_event_frames(
                request, feed, tables, user_id, heartbeat_seconds, types=types
            ):
                yield frame
        finally:
            if metrics:
                metrics.realtime_subscribers.labels(stream=stream_name).dec()
            logger.debug("event_stream_closed", stream=stream_name)

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

"""
SDK-facing endpoints for authorization data.

- GET /security-resource-updates/snapshot: full authorization data of the app
- GET /security-resource-updates/stream: SSE stream of UpdateEvents

Both authenticate with the app's key and secret.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncGenerator

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from app.core.config import get_settings
from app.core.context import require_app_credentials
from app.core.database import get_session
from app.core.notifier import (
    ResourceUpdateNotifier,
    SubscriberLimitExceeded,
    get_notifier,
)
from app.models.app import SecurityApp
from app.services.authorization import AuthorizationService
from fort_shared.schemas.updates import AuthorizationSnapshot

log = structlog.get_logger()

router = APIRouter()

POLL_SECONDS = 1.0


@router.get("/security-resource-updates/snapshot", response_model=AuthorizationSnapshot)
async def get_authorization_snapshot(
    app: SecurityApp = Depends(require_app_credentials),
    session: AsyncSession = Depends(get_session),
):
    """Roles, groups, resources and navs of the calling app."""
    return await AuthorizationService(session).snapshot(app)


async def update_stream(
    request: Request,
    notifier: ResourceUpdateNotifier,
    app_key: str,
) -> AsyncGenerator[dict, None]:
    """Yield SSE frames for the app's UpdateEvents until the client disconnects."""
    try:
        subscription = notifier.subscribe(app_key)
    except SubscriberLimitExceeded as exc:
        yield {"event": "error", "data": json.dumps({"code": "SUBSCRIBER_LIMIT", "message": str(exc)})}
        return

    try:
        while True:
            if await request.is_disconnected():
                break
            event = await subscription.get(timeout=POLL_SECONDS)
            if event is None:
                continue
            yield {
                "event": event.event_name,
                "id": str(event.event_id),
                "data": event.model_dump_json(),
            }
    except asyncio.CancelledError:
        log.info("resource_update.stream_cancelled", app_key=app_key)
        raise
    finally:
        notifier.unsubscribe(subscription)


@router.get("/security-resource-updates/stream")
async def stream_updates(
    request: Request,
    app: SecurityApp = Depends(require_app_credentials),
    notifier: ResourceUpdateNotifier = Depends(get_notifier),
):
    """
    Stream resource updates of the calling app via SSE.

    Event names are ``<entity_kind>.<operation>``, e.g. ``SECURITY_ROLE.DELETE``;
    the data is the JSON UpdateEvent. Keepalive pings are sent periodically.
    """
    settings = get_settings()
    if notifier.at_capacity(app.app_key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many concurrent update subscribers for this app.",
        )

    return EventSourceResponse(
        update_stream(request, notifier, app.app_key),
        ping=settings.stream_ping_seconds,
    )

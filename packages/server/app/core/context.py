"""
Request-scoped tenant context and app credential checks.

The admin UI selects the app it is working on with the `X-Fort-App` header
(the app key). The resolved app travels explicitly into every service call
instead of being looked up from global request state.

SDK clients authenticate with `X-App-Key` / `X-App-Secret`.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import get_session
from app.core.errors import BadRequestAlert
from app.models.app import SecurityApp

log = structlog.get_logger()

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class TenantContext:
    app: Optional[SecurityApp] = None
    actor: str = SYSTEM_ACTOR

    @property
    def app_id(self) -> Optional[int]:
        return self.app.id if self.app else None


async def find_app_by_key(session: AsyncSession, app_key: str) -> Optional[SecurityApp]:
    result = await session.execute(select(SecurityApp).where(SecurityApp.app_key == app_key))
    return result.scalar_one_or_none()


async def get_tenant_context(
    x_fort_app: Optional[str] = Header(None, alias="X-Fort-App"),
    x_fort_user: Optional[str] = Header(None, alias="X-Fort-User"),
    session: AsyncSession = Depends(get_session),
) -> TenantContext:
    """FastAPI dependency resolving the app the caller is working on."""
    actor = (x_fort_user or SYSTEM_ACTOR)[:50]
    if not x_fort_app:
        return TenantContext(actor=actor)

    app = await find_app_by_key(session, x_fort_app)
    if app is None:
        raise BadRequestAlert("securityApp", "appnotfound", f"Unknown app key '{x_fort_app}'")
    return TenantContext(app=app, actor=actor)


async def require_app_credentials(
    x_app_key: Optional[str] = Header(None, alias="X-App-Key"),
    x_app_secret: Optional[str] = Header(None, alias="X-App-Secret"),
    session: AsyncSession = Depends(get_session),
) -> SecurityApp:
    """Authenticate an SDK client by its app key and secret."""
    if not x_app_key or not x_app_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="App credentials required",
        )

    app = await find_app_by_key(session, x_app_key)
    if app is None or not app.app_secret or not hmac.compare_digest(
        app.app_secret.encode(), x_app_secret.encode()
    ):
        log.warning("app_credentials.rejected", app_key=x_app_key)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid app credentials",
        )
    return app

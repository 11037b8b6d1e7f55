"""
App service: tenant lifecycle.

Apps get a generated key/secret pair when none is supplied. An app cannot be
deleted while it still owns groups, roles, resources or nav items.
"""

from __future__ import annotations

import secrets
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlmodel import select

from app.core.errors import BadRequestAlert
from app.models.app import SecurityApp
from app.models.group import SecurityGroup
from app.models.login_event import SecurityLoginEvent
from app.models.nav import SecurityNav
from app.models.resource import SecurityResourceEntity
from app.models.role import SecurityRole
from app.services.base import SecurityEntityService
from fort_shared.schemas.apps import SecurityAppRead, SecurityAppWrite
from fort_shared.schemas.common import ResourceKind

log = structlog.get_logger()

APP_KEY_BYTES = 8  # 16 hex chars, fits the 20 char column
APP_SECRET_BYTES = 10


def generate_app_key() -> str:
    return secrets.token_hex(APP_KEY_BYTES)


def generate_app_secret() -> str:
    return secrets.token_hex(APP_SECRET_BYTES)


class SecurityAppService(SecurityEntityService[SecurityApp]):
    model = SecurityApp
    read_schema = SecurityAppRead
    entity_name = "securityApp"
    kind = ResourceKind.APP
    writable_fields = ("app_name", "st")
    app_scoped = False
    private_fields = frozenset({"app_secret"})

    async def owner_app_key(self, entity: SecurityApp) -> Optional[str]:
        return entity.app_key

    async def find_by_name(self, app_name: str, exclude_id: Optional[int] = None) -> Optional[SecurityApp]:
        stmt = select(SecurityApp).where(SecurityApp.app_name == app_name)
        if exclude_id is not None:
            stmt = stmt.where(SecurityApp.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalars().first()

    async def find_by_key(self, app_key: str, exclude_id: Optional[int] = None) -> Optional[SecurityApp]:
        stmt = select(SecurityApp).where(SecurityApp.app_key == app_key)
        if exclude_id is not None:
            stmt = stmt.where(SecurityApp.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalars().first()

    async def validate(self, entity: SecurityApp, data: SecurityAppWrite, app_id) -> None:
        if await self.find_by_name(data.app_name, exclude_id=entity.id) is not None:
            raise BadRequestAlert(
                self.entity_name, "nameexists", f"An app named '{data.app_name}' already exists"
            )
        if data.app_key and await self.find_by_key(data.app_key, exclude_id=entity.id) is not None:
            raise BadRequestAlert(
                self.entity_name, "appkeyexists", f"App key '{data.app_key}' is already in use"
            )

    async def before_flush(self, entity: SecurityApp, data: SecurityAppWrite) -> None:
        # Omitted credentials keep their current value, or get generated.
        entity.app_key = data.app_key or entity.app_key or generate_app_key()
        entity.app_secret = data.app_secret or entity.app_secret or generate_app_secret()

    async def owned_counts(self, app_id: int) -> dict[str, int]:
        counts = {}
        for model in (SecurityGroup, SecurityRole, SecurityResourceEntity, SecurityNav):
            result = await self.session.execute(
                select(func.count()).select_from(model).where(model.app_id == app_id)
            )
            counts[model.__tablename__] = result.scalar_one()
        return counts

    async def before_delete(self, entity: SecurityApp) -> None:
        counts = await self.owned_counts(entity.id)
        if any(counts.values()):
            raise BadRequestAlert(
                self.entity_name,
                "appnotempty",
                f"App {entity.id} still owns resources: "
                + ", ".join(f"{name}={n}" for name, n in counts.items() if n),
            )
        # Login history outlives the app.
        await self.session.execute(
            update(SecurityLoginEvent)
            .where(SecurityLoginEvent.app_id == entity.id)
            .values(app_id=None)
        )
        log.info("security_app.login_events_detached", app_id=entity.id)

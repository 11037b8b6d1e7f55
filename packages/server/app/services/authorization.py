"""
Authorization snapshot for SDK clients.

A client primes its cache with the snapshot, then keeps it current by
applying UpdateEvents from the update stream.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.app import SecurityApp
from app.models.group import SecurityGroup
from app.models.nav import SecurityNav
from app.models.resource import SecurityResourceEntity
from app.services.groups import SecurityGroupService
from app.services.navs import SecurityNavService
from app.services.resources import SecurityResourceEntityService
from app.services.roles import SecurityRoleService
from fort_shared.schemas.apps import SecurityAppPublic
from fort_shared.schemas.updates import AuthorizationSnapshot

log = structlog.get_logger()


class AuthorizationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _owned(self, model, app_id: int) -> list:
        result = await self.session.execute(
            select(model).where(model.app_id == app_id).order_by(model.id)
        )
        return list(result.scalars().all())

    async def snapshot(self, app: SecurityApp) -> AuthorizationSnapshot:
        roles = SecurityRoleService(self.session)
        groups = SecurityGroupService(self.session)
        resources = SecurityResourceEntityService(self.session)
        navs = SecurityNavService(self.session)

        snapshot = AuthorizationSnapshot(
            app=SecurityAppPublic.model_validate(app),
            roles=[await roles.to_read(r) for r in await roles.find_all_by_app(app.id)],
            groups=[await groups.to_read(g) for g in await self._owned(SecurityGroup, app.id)],
            resources=[
                await resources.to_read(r)
                for r in await self._owned(SecurityResourceEntity, app.id)
            ],
            navs=[await navs.to_read(n) for n in await self._owned(SecurityNav, app.id)],
        )
        log.info(
            "authorization.snapshot_built",
            app_key=app.app_key,
            roles=len(snapshot.roles),
            groups=len(snapshot.groups),
            resources=len(snapshot.resources),
            navs=len(snapshot.navs),
        )
        return snapshot

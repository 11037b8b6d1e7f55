"""
Nav service: navigation menu tree of an app.

A nav item may point at a parent item and at the resource it opens. Both
must belong to the same app, and parent links must not form a cycle.
Deleting an item moves its children up to its own parent.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete
from sqlmodel import select

from app.core.errors import BadRequestAlert
from app.models.links import SecurityRoleNav
from app.models.nav import SecurityNav
from app.models.resource import SecurityResourceEntity
from app.services.base import SecurityEntityService
from fort_shared.schemas.common import ResourceKind
from fort_shared.schemas.navs import SecurityNavRead, SecurityNavWrite

MAX_NAV_DEPTH = 32


class SecurityNavService(SecurityEntityService[SecurityNav]):
    model = SecurityNav
    read_schema = SecurityNavRead
    entity_name = "securityNav"
    kind = ResourceKind.NAV
    writable_fields = ("name", "icon", "position", "st", "parent_id", "resource_id")

    async def children(self, parent_id: int) -> list[SecurityNav]:
        result = await self.session.execute(
            select(SecurityNav)
            .where(SecurityNav.parent_id == parent_id)
            .order_by(SecurityNav.position, SecurityNav.id)
        )
        return list(result.scalars().all())

    async def find_by_resource(self, resource_id: int) -> list[SecurityNav]:
        result = await self.session.execute(
            select(SecurityNav).where(SecurityNav.resource_id == resource_id)
        )
        return list(result.scalars().all())

    async def validate(self, entity: SecurityNav, data: SecurityNavWrite, app_id) -> None:
        if data.resource_id is not None:
            await self.ensure_same_app(SecurityResourceEntity, [data.resource_id], app_id, "resource")
        if data.parent_id is not None:
            await self.ensure_same_app(SecurityNav, [data.parent_id], app_id, "parent nav")
            await self._check_cycle(entity.id, data.parent_id)

    async def _check_cycle(self, nav_id: Optional[int], parent_id: int) -> None:
        if nav_id is None:
            return
        current: Optional[int] = parent_id
        for _ in range(MAX_NAV_DEPTH):
            if current is None:
                return
            if current == nav_id:
                raise BadRequestAlert(
                    self.entity_name, "badrelation", "A nav item cannot be its own ancestor"
                )
            parent = await self.session.get(SecurityNav, current)
            current = parent.parent_id if parent else None
        raise BadRequestAlert(
            self.entity_name, "badrelation", f"Nav tree deeper than {MAX_NAV_DEPTH} levels"
        )

    async def before_delete(self, entity: SecurityNav) -> None:
        from app.services.roles import SecurityRoleService

        for child in await self.children(entity.id):
            child.parent_id = entity.parent_id
            self.session.add(child)
            await self.session.flush()
            await self.reindex(child)

        result = await self.session.execute(
            select(SecurityRoleNav.role_id).where(SecurityRoleNav.nav_id == entity.id)
        )
        role_ids = [row[0] for row in result.all()]
        await self.session.execute(
            delete(SecurityRoleNav).where(SecurityRoleNav.nav_id == entity.id)
        )
        await SecurityRoleService(self.session).reindex_ids(role_ids)

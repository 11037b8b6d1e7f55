"""
Role service: roles grant access to resources and nav items of one app.

Deleting a role detaches it from every group that referenced it; those
groups are re-indexed so search reflects the new membership.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete
from sqlmodel import select

from app.models.links import SecurityGroupRole, SecurityRoleNav, SecurityRoleResource
from app.models.nav import SecurityNav
from app.models.resource import SecurityResourceEntity
from app.models.role import SecurityRole
from app.services.base import SecurityEntityService
from fort_shared.schemas.common import ResourceKind
from fort_shared.schemas.roles import SecurityRoleRead, SecurityRoleWrite


class SecurityRoleService(SecurityEntityService[SecurityRole]):
    model = SecurityRole
    read_schema = SecurityRoleRead
    entity_name = "securityRole"
    kind = ResourceKind.ROLE
    writable_fields = ("name", "st")
    unique_names = True

    async def link_fields(self, entity: SecurityRole) -> dict[str, Any]:
        resources = await self.session.execute(
            select(SecurityRoleResource.resource_id)
            .where(SecurityRoleResource.role_id == entity.id)
            .order_by(SecurityRoleResource.resource_id)
        )
        navs = await self.session.execute(
            select(SecurityRoleNav.nav_id)
            .where(SecurityRoleNav.role_id == entity.id)
            .order_by(SecurityRoleNav.nav_id)
        )
        return {
            "resource_ids": [row[0] for row in resources.all()],
            "nav_ids": [row[0] for row in navs.all()],
        }

    async def validate(self, entity: SecurityRole, data: SecurityRoleWrite, app_id) -> None:
        await super().validate(entity, data, app_id)
        await self.ensure_same_app(SecurityResourceEntity, data.resource_ids, app_id, "resources")
        await self.ensure_same_app(SecurityNav, data.nav_ids, app_id, "navs")

    async def write_links(self, entity: SecurityRole, data: SecurityRoleWrite) -> None:
        await self.session.execute(
            delete(SecurityRoleResource).where(SecurityRoleResource.role_id == entity.id)
        )
        await self.session.execute(
            delete(SecurityRoleNav).where(SecurityRoleNav.role_id == entity.id)
        )
        for resource_id in sorted(set(data.resource_ids)):
            self.session.add(SecurityRoleResource(role_id=entity.id, resource_id=resource_id))
        for nav_id in sorted(set(data.nav_ids)):
            self.session.add(SecurityRoleNav(role_id=entity.id, nav_id=nav_id))
        await self.session.flush()

    async def find_all_by_app(self, app_id: int) -> list[SecurityRole]:
        result = await self.session.execute(
            select(SecurityRole).where(SecurityRole.app_id == app_id).order_by(SecurityRole.id)
        )
        return list(result.scalars().all())

    async def before_delete(self, entity: SecurityRole) -> None:
        from app.services.groups import SecurityGroupService

        result = await self.session.execute(
            select(SecurityGroupRole.group_id).where(SecurityGroupRole.role_id == entity.id)
        )
        group_ids = [row[0] for row in result.all()]

        await self.session.execute(
            delete(SecurityGroupRole).where(SecurityGroupRole.role_id == entity.id)
        )
        await self.session.execute(
            delete(SecurityRoleResource).where(SecurityRoleResource.role_id == entity.id)
        )
        await self.session.execute(
            delete(SecurityRoleNav).where(SecurityRoleNav.role_id == entity.id)
        )
        await SecurityGroupService(self.session).reindex_ids(group_ids)

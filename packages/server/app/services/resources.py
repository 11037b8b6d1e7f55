"""
Resource service: protected URLs of an app.

Deleting a resource removes it from every role and clears it from nav items
pointing at it; affected rows are re-indexed.
"""

from __future__ import annotations

from sqlalchemy import delete
from sqlmodel import select

from app.models.links import SecurityRoleResource
from app.models.resource import SecurityResourceEntity
from app.services.base import SecurityEntityService
from fort_shared.schemas.common import ResourceKind
from fort_shared.schemas.resources import SecurityResourceEntityRead


class SecurityResourceEntityService(SecurityEntityService[SecurityResourceEntity]):
    model = SecurityResourceEntity
    read_schema = SecurityResourceEntityRead
    entity_name = "securityResourceEntity"
    kind = ResourceKind.RESOURCE
    writable_fields = ("name", "url", "st")

    async def before_delete(self, entity: SecurityResourceEntity) -> None:
        from app.services.navs import SecurityNavService
        from app.services.roles import SecurityRoleService

        result = await self.session.execute(
            select(SecurityRoleResource.role_id).where(
                SecurityRoleResource.resource_id == entity.id
            )
        )
        role_ids = [row[0] for row in result.all()]
        await self.session.execute(
            delete(SecurityRoleResource).where(SecurityRoleResource.resource_id == entity.id)
        )

        nav_service = SecurityNavService(self.session)
        for nav in await nav_service.find_by_resource(entity.id):
            nav.resource_id = None
            self.session.add(nav)
            await self.session.flush()
            await nav_service.reindex(nav)

        await SecurityRoleService(self.session).reindex_ids(role_ids)

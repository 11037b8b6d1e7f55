"""Group service: groups bundle roles within one app."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete
from sqlmodel import select

from app.models.group import SecurityGroup
from app.models.links import SecurityGroupRole
from app.models.role import SecurityRole
from app.services.base import SecurityEntityService
from fort_shared.schemas.common import ResourceKind
from fort_shared.schemas.groups import SecurityGroupRead, SecurityGroupWrite


class SecurityGroupService(SecurityEntityService[SecurityGroup]):
    model = SecurityGroup
    read_schema = SecurityGroupRead
    entity_name = "securityGroup"
    kind = ResourceKind.GROUP
    writable_fields = ("name", "st")
    unique_names = True

    async def link_fields(self, entity: SecurityGroup) -> dict[str, Any]:
        result = await self.session.execute(
            select(SecurityGroupRole.role_id)
            .where(SecurityGroupRole.group_id == entity.id)
            .order_by(SecurityGroupRole.role_id)
        )
        return {"role_ids": [row[0] for row in result.all()]}

    async def validate(self, entity: SecurityGroup, data: SecurityGroupWrite, app_id) -> None:
        await super().validate(entity, data, app_id)
        await self.ensure_same_app(SecurityRole, data.role_ids, app_id, "roles")

    async def write_links(self, entity: SecurityGroup, data: SecurityGroupWrite) -> None:
        await self.session.execute(
            delete(SecurityGroupRole).where(SecurityGroupRole.group_id == entity.id)
        )
        for role_id in sorted(set(data.role_ids)):
            self.session.add(SecurityGroupRole(group_id=entity.id, role_id=role_id))
        await self.session.flush()

    async def before_delete(self, entity: SecurityGroup) -> None:
        await self.session.execute(
            delete(SecurityGroupRole).where(SecurityGroupRole.group_id == entity.id)
        )

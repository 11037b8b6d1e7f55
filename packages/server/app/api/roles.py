"""Role endpoints (/api/security-roles)."""

from app.api.crud import build_crud_router
from app.services.roles import SecurityRoleService
from fort_shared.schemas.roles import SecurityRoleRead, SecurityRoleWrite

router = build_crud_router(
    path="security-roles",
    service_class=SecurityRoleService,
    write_schema=SecurityRoleWrite,
    read_schema=SecurityRoleRead,
)

"""Group endpoints (/api/security-groups)."""

from app.api.crud import build_crud_router
from app.services.groups import SecurityGroupService
from fort_shared.schemas.groups import SecurityGroupRead, SecurityGroupWrite

router = build_crud_router(
    path="security-groups",
    service_class=SecurityGroupService,
    write_schema=SecurityGroupWrite,
    read_schema=SecurityGroupRead,
)

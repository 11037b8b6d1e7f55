"""Nav endpoints (/api/security-navs), plus the children of a nav item."""

from typing import List

from fastapi import Depends

from app.api.crud import build_crud_router, service_dependency
from app.core.context import TenantContext, get_tenant_context
from app.services.navs import SecurityNavService
from fort_shared.schemas.navs import SecurityNavRead, SecurityNavWrite

router = build_crud_router(
    path="security-navs",
    service_class=SecurityNavService,
    write_schema=SecurityNavWrite,
    read_schema=SecurityNavRead,
)


@router.get("/security-navs/{entity_id}/children", response_model=List[SecurityNavRead])
async def list_nav_children(
    entity_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: SecurityNavService = Depends(service_dependency(SecurityNavService)),
):
    """Direct children of a nav item, ordered by position."""
    await service.get_or_404(entity_id, ctx)
    return [await service.to_read(child) for child in await service.children(entity_id)]

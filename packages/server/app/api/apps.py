"""App endpoints (/api/security-apps)."""

from app.api.crud import build_crud_router
from app.services.apps import SecurityAppService
from fort_shared.schemas.apps import SecurityAppRead, SecurityAppWrite

router = build_crud_router(
    path="security-apps",
    service_class=SecurityAppService,
    write_schema=SecurityAppWrite,
    read_schema=SecurityAppRead,
)

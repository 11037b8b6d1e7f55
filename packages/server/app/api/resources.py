"""Resource endpoints (/api/security-resource-entities)."""

from app.api.crud import build_crud_router
from app.services.resources import SecurityResourceEntityService
from fort_shared.schemas.resources import (
    SecurityResourceEntityRead,
    SecurityResourceEntityWrite,
)

router = build_crud_router(
    path="security-resource-entities",
    service_class=SecurityResourceEntityService,
    write_schema=SecurityResourceEntityWrite,
    read_schema=SecurityResourceEntityRead,
)

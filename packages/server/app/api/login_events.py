"""Login event endpoints (/api/security-login-events)."""

from app.api.crud import build_crud_router
from app.services.login_events import SecurityLoginEventService
from fort_shared.schemas.login_events import (
    SecurityLoginEventRead,
    SecurityLoginEventWrite,
)

router = build_crud_router(
    path="security-login-events",
    service_class=SecurityLoginEventService,
    write_schema=SecurityLoginEventWrite,
    read_schema=SecurityLoginEventRead,
)

"""Login event service. Login history is not part of authorization data, so no update notifications."""

from __future__ import annotations

from datetime import datetime, timezone

from app.models.login_event import SecurityLoginEvent
from app.services.base import SecurityEntityService
from fort_shared.schemas.login_events import SecurityLoginEventRead, SecurityLoginEventWrite


class SecurityLoginEventService(SecurityEntityService[SecurityLoginEvent]):
    model = SecurityLoginEvent
    read_schema = SecurityLoginEventRead
    entity_name = "securityLoginEvent"
    writable_fields = ("user_login", "ip_address", "user_agent", "token_overdue_time")
    app_required = False

    async def before_flush(self, entity: SecurityLoginEvent, data: SecurityLoginEventWrite) -> None:
        entity.login_time = data.login_time or entity.login_time or datetime.now(timezone.utc)

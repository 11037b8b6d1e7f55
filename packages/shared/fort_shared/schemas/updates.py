"""
Resource update notifications shared between server and SDK.

An UpdateEvent describes one committed create/update/delete of a security
resource. Events are transient: they live only while being delivered to
subscribers of the owning app and are never persisted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field

from .apps import SecurityAppPublic
from .common import ResourceKind, UpdateOperation
from .groups import SecurityGroupRead
from .navs import SecurityNavRead
from .resources import SecurityResourceEntityRead
from .roles import SecurityRoleRead


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpdateEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    operation: UpdateOperation
    entity_kind: ResourceKind
    app_key: str = Field(min_length=1)
    payload: dict[str, Any]
    occurred_at: datetime = Field(default_factory=_utcnow)

    @property
    def event_name(self) -> str:
        """SSE event name, e.g. ``SECURITY_ROLE.DELETE``."""
        return f"{self.entity_kind.value}.{self.operation.value}"

    @property
    def entity_id(self) -> int | None:
        return self.payload.get("id")


class AuthorizationSnapshot(BaseModel):
    """Everything an SDK client needs to authorize requests for one app."""
    app: SecurityAppPublic
    roles: List[SecurityRoleRead] = Field(default_factory=list)
    groups: List[SecurityGroupRead] = Field(default_factory=list)
    resources: List[SecurityResourceEntityRead] = Field(default_factory=list)
    navs: List[SecurityNavRead] = Field(default_factory=list)

"""
App (tenant) schemas shared between server and SDK.

An app is the tenant boundary: every group, role, resource and nav item is
owned by exactly one app. `app_key` is the public identifier used to route
update notifications; `app_secret` authenticates SDK clients.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SecurityAppBase(BaseModel):
    app_name: str = Field(min_length=1, max_length=50)
    app_key: Optional[str] = Field(default=None, max_length=20)
    app_secret: Optional[str] = Field(default=None, max_length=20)
    st: Optional[str] = Field(default=None, max_length=60)


class SecurityAppWrite(SecurityAppBase):
    """Body of POST/PUT. `id` must be absent on create and present on update."""
    id: Optional[int] = None


class SecurityAppRead(SecurityAppBase):
    id: int
    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SecurityAppPublic(BaseModel):
    """App view handed to SDK clients and update subscribers (no secret)."""
    id: int
    app_name: str
    app_key: Optional[str] = None
    st: Optional[str] = None

    model_config = {"from_attributes": True}

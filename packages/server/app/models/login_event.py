"""SecurityLoginEvent model (append-mostly audit of user logins)."""

from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import IdMixin


class SecurityLoginEvent(IdMixin, SQLModel, table=True):
    __tablename__ = "security_login_event"

    user_login: str = Field(max_length=50, nullable=False, index=True)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=255)
    login_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    token_overdue_time: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    app_id: Optional[int] = Field(default=None, foreign_key="security_app.id", index=True)

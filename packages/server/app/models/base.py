"""Base mixins for SQLModel tables."""

from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdMixin(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)


class AuditingMixin(SQLModel):
    """Who created / last modified the row, and when."""

    created_by: str = Field(default="system", max_length=50, nullable=False)
    created_date: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
    last_modified_by: Optional[str] = Field(default=None, max_length=50)
    last_modified_date: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column_kwargs={"onupdate": _utcnow},
        sa_type=sa.DateTime(timezone=True),
    )

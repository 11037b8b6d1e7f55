"""SecurityRole model (app-scoped)."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import AuditingMixin, IdMixin


class SecurityRole(IdMixin, AuditingMixin, SQLModel, table=True):
    __tablename__ = "security_role"

    name: str = Field(max_length=50, nullable=False)
    st: Optional[str] = Field(default=None, max_length=60)
    app_id: Optional[int] = Field(default=None, foreign_key="security_app.id", index=True)

"""SecurityResourceEntity model: a protected URL of an app."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import AuditingMixin, IdMixin


class SecurityResourceEntity(IdMixin, AuditingMixin, SQLModel, table=True):
    __tablename__ = "security_resource_entity"

    name: str = Field(max_length=50, nullable=False)
    url: str = Field(max_length=255, nullable=False)
    st: Optional[str] = Field(default=None, max_length=60)
    app_id: Optional[int] = Field(default=None, foreign_key="security_app.id", index=True)

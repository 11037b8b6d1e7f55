"""SecurityNav model: a navigation menu entry, optionally nested."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import AuditingMixin, IdMixin


class SecurityNav(IdMixin, AuditingMixin, SQLModel, table=True):
    __tablename__ = "security_nav"

    name: str = Field(max_length=50, nullable=False)
    icon: Optional[str] = Field(default=None, max_length=50)
    position: Optional[int] = None
    st: Optional[str] = Field(default=None, max_length=60)
    parent_id: Optional[int] = Field(default=None, foreign_key="security_nav.id", index=True)
    resource_id: Optional[int] = Field(
        default=None, foreign_key="security_resource_entity.id", index=True
    )
    app_id: Optional[int] = Field(default=None, foreign_key="security_app.id", index=True)

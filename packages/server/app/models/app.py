"""SecurityApp model (tenant root)."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import AuditingMixin, IdMixin


class SecurityApp(IdMixin, AuditingMixin, SQLModel, table=True):
    __tablename__ = "security_app"

    app_name: str = Field(max_length=50, unique=True, nullable=False, index=True)
    app_key: Optional[str] = Field(default=None, max_length=20, unique=True, index=True)
    app_secret: Optional[str] = Field(default=None, max_length=20)
    st: Optional[str] = Field(default=None, max_length=60)

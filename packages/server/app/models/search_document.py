"""Search mirror: one document per entity, keyed by (index_name, doc_id)."""

from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import IdMixin


class SearchDocument(IdMixin, SQLModel, table=True):
    __tablename__ = "search_documents"
    __table_args__ = (
        sa.UniqueConstraint("index_name", "doc_id", name="uq_search_documents_index_doc"),
    )

    index_name: str = Field(max_length=40, nullable=False, index=True)
    doc_id: int = Field(nullable=False)
    app_id: Optional[int] = Field(default=None, index=True)
    body: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
    content: str = Field(default="", sa_type=sa.Text, nullable=False)

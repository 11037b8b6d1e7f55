"""
Search index mirror and typed query builder.

Every entity row has a mirror document in `search_documents`, written in the
same session as the row itself. Queries are parsed into a `SearchQuery`
up front, so a malformed query is rejected before any I/O happens.

Query grammar (terms are AND-combined, matching is case-insensitive
substring):

    *                       match everything (same as an empty query)
    admin                   any field contains "admin"
    name:admin              field "name" contains "admin"
    name:"ops team"         quoted values may contain spaces
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.search_document import SearchDocument

log = structlog.get_logger()

MAX_TERMS = 16
_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class InvalidSearchQuery(ValueError):
    pass


@dataclass(frozen=True)
class SearchTerm:
    value: str
    field: Optional[str] = None

    def matches(self, document: Mapping[str, Any]) -> bool:
        if self.field is not None:
            return self.value in _text(document.get(self.field))
        return any(self.value in _text(v) for v in document.values())


@dataclass(frozen=True)
class SearchQuery:
    terms: tuple[SearchTerm, ...] = ()

    @property
    def match_all(self) -> bool:
        return not self.terms

    @classmethod
    def parse(cls, raw: Optional[str], fields: Collection[str]) -> "SearchQuery":
        raw = (raw or "").strip()
        if raw in ("", "*"):
            return cls()

        try:
            tokens = shlex.split(raw)
        except ValueError as exc:
            raise InvalidSearchQuery(f"Malformed query: {exc}") from exc

        if len(tokens) > MAX_TERMS:
            raise InvalidSearchQuery(f"Query has more than {MAX_TERMS} terms")

        terms = []
        for token in tokens:
            field, sep, value = token.partition(":")
            if sep and _FIELD_RE.match(field) and not value.startswith("//"):
                if field not in fields:
                    raise InvalidSearchQuery(f"Unknown search field '{field}'")
                if not value:
                    raise InvalidSearchQuery(f"Empty value for field '{field}'")
                terms.append(SearchTerm(value=value.lower(), field=field))
            else:
                terms.append(SearchTerm(value=token.lower()))
        return cls(terms=tuple(terms))

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(term.matches(document) for term in self.terms)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return " ".join(_text(v) for v in value)
    return str(value).lower()


def document_content(body: Mapping[str, Any]) -> str:
    """Lower-cased text every term value must occur in for a document to match."""
    return "\n".join(_text(v) for v in body.values() if v is not None)


class SearchIndex:
    """Search mirror bound to the caller's session (and transaction)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def index(
        self,
        index_name: str,
        doc_id: int,
        body: dict[str, Any],
        app_id: Optional[int] = None,
    ) -> None:
        result = await self._session.execute(
            select(SearchDocument).where(
                SearchDocument.index_name == index_name,
                SearchDocument.doc_id == doc_id,
            )
        )
        doc = result.scalar_one_or_none()
        if doc is None:
            doc = SearchDocument(index_name=index_name, doc_id=doc_id)
        doc.app_id = app_id
        doc.body = body
        doc.content = document_content(body)
        self._session.add(doc)
        await self._session.flush()

    async def delete(self, index_name: str, doc_id: int) -> None:
        await self._session.execute(
            delete(SearchDocument).where(
                SearchDocument.index_name == index_name,
                SearchDocument.doc_id == doc_id,
            )
        )

    async def search(
        self,
        index_name: str,
        query: SearchQuery,
        *,
        app_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        stmt = select(SearchDocument).where(SearchDocument.index_name == index_name)
        if app_id is not None:
            stmt = stmt.where(SearchDocument.app_id == app_id)

        if query.match_all:
            total = (
                await self._session.execute(
                    select(func.count()).select_from(stmt.subquery())
                )
            ).scalar_one()
            result = await self._session.execute(
                stmt.order_by(SearchDocument.doc_id).offset(offset).limit(limit)
            )
            return [doc.body for doc in result.scalars().all()], total

        # Narrow in SQL, then evaluate field-scoped terms exactly.
        for term in query.terms:
            stmt = stmt.where(SearchDocument.content.contains(term.value, autoescape=True))
        result = await self._session.execute(stmt.order_by(SearchDocument.doc_id))
        hits = [doc.body for doc in result.scalars().all() if query.matches(doc.body)]
        log.debug("search.executed", index=index_name, hits=len(hits))
        return hits[offset:offset + limit], len(hits)

"""
Pagination and sorting helpers for list/search endpoints.

Totals travel in `X-Total-Count`; navigation in an RFC 5988 `Link` header.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import Query

from app.core.errors import BadRequestAlert


@dataclass(frozen=True)
class PageParams:
    page: int
    per_page: int
    sort: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    sort: Optional[str] = Query(None, description="field,asc|desc"),
) -> PageParams:
    return PageParams(page=page, per_page=per_page, sort=sort)


def parse_sort(sort: Optional[str], model: Any, entity_name: str) -> list:
    """Turn ``name,desc`` into an ORDER BY clause; defaults to id ascending."""
    if not sort:
        return [model.id.asc()]

    field, _, direction = sort.partition(",")
    field = field.strip()
    direction = (direction.strip() or "asc").lower()
    column = model.__table__.columns.get(field)
    if column is None or direction not in ("asc", "desc"):
        raise BadRequestAlert(entity_name, "badsort", f"Cannot sort by '{sort}'")

    attr = getattr(model, field)
    ordering = attr.asc() if direction == "asc" else attr.desc()
    return [ordering, model.id.asc()]


def pagination_headers(
    total: int,
    params: PageParams,
    base_url: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, str]:
    last_page = max(1, math.ceil(total / params.per_page))

    def _link(page: int, rel: str) -> str:
        query = {k: v for k, v in (extra or {}).items() if v is not None}
        query.update(page=page, per_page=params.per_page)
        if params.sort:
            query["sort"] = params.sort
        return f'<{base_url}?{urlencode(query)}>; rel="{rel}"'

    links = []
    if params.page < last_page:
        links.append(_link(params.page + 1, "next"))
    if params.page > 1:
        links.append(_link(params.page - 1, "prev"))
    links.append(_link(last_page, "last"))
    links.append(_link(1, "first"))
    return {"X-Total-Count": str(total), "Link": ",".join(links)}

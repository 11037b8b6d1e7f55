"""
Shared service layer for security entities.

Every write follows the same sequence inside the request's session:

1. validate (ownership, duplicate names, relation ownership)
2. write the row and its link rows
3. mirror the row into the search index
4. commit
5. hand the change to the ResourceUpdateNotifier (best-effort)

Deletes capture the owning app key *before* the row disappears, so the
DELETE notification can still be routed to the app's subscribers.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, Iterable, Optional, TypeVar

import structlog
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from app.core.context import TenantContext
from app.core.errors import BadRequestAlert, EntityNotFound
from app.core.notifier import ResourceUpdateNotifier
from app.core.pagination import PageParams, parse_sort
from app.core.search import InvalidSearchQuery, SearchIndex, SearchQuery
from app.models.app import SecurityApp
from app.models.base import AuditingMixin
from fort_shared.schemas.common import INDEX_NAMES, ResourceKind, UpdateOperation

log = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=SQLModel)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class SecurityEntityService(Generic[ModelT]):
    model: ClassVar[type[SQLModel]]
    read_schema: ClassVar[type[BaseModel]]
    entity_name: ClassVar[str]
    kind: ClassVar[Optional[ResourceKind]] = None
    # Columns copied verbatim from the write schema
    writable_fields: ClassVar[tuple[str, ...]] = ()
    # Owned by an app (has app_id); app_required means the owner is mandatory
    app_scoped: ClassVar[bool] = True
    app_required: ClassVar[bool] = True
    unique_names: ClassVar[bool] = False
    # Fields never written to the search index or update payloads
    private_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, session: AsyncSession, notifier: Optional[ResourceUpdateNotifier] = None):
        self.session = session
        self.notifier = notifier
        self.search_index = SearchIndex(session)

    @property
    def index_name(self) -> str:
        return INDEX_NAMES[self.model.__name__]

    @property
    def search_fields(self) -> frozenset[str]:
        return frozenset(self.read_schema.model_fields) - self.private_fields

    @property
    def log_prefix(self) -> str:
        return _snake(self.model.__name__)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_one(self, entity_id: int) -> Optional[ModelT]:
        return await self.session.get(self.model, entity_id)

    async def get_or_404(
        self, entity_id: int, ctx: Optional[TenantContext] = None
    ) -> ModelT:
        """The entity, or EntityNotFound; entities of another app than `ctx.app` count as missing."""
        entity = await self.find_one(entity_id)
        if entity is None or not self.visible_to(entity, ctx):
            raise EntityNotFound(self.entity_name, entity_id)
        return entity

    def visible_to(self, entity: ModelT, ctx: Optional[TenantContext]) -> bool:
        if not self.app_scoped or ctx is None or ctx.app is None:
            return True
        return entity.app_id == ctx.app_id

    async def find_all(
        self, params: PageParams, app_id: Optional[int] = None
    ) -> tuple[list[ModelT], int]:
        log.debug(f"{self.log_prefix}.list_requested", app_id=app_id, page=params.page)
        stmt = select(self.model)
        if self.app_scoped and app_id is not None:
            stmt = stmt.where(self.model.app_id == app_id)

        total = (
            await self.session.execute(select(func.count()).select_from(stmt.subquery()))
        ).scalar_one()
        stmt = (
            stmt.order_by(*parse_sort(params.sort, self.model, self.entity_name))
            .offset(params.offset)
            .limit(params.per_page)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def find_by_app_and_name(
        self, app_id: Optional[int], name: str, exclude_id: Optional[int] = None
    ) -> Optional[ModelT]:
        stmt = select(self.model).where(
            self.model.app_id == app_id, self.model.name == name
        )
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalars().first()

    async def search(
        self, raw_query: str, params: PageParams, app_id: Optional[int] = None
    ) -> tuple[list[BaseModel], int]:
        log.debug(f"{self.log_prefix}.search_requested", query=raw_query)
        try:
            query = SearchQuery.parse(raw_query, self.search_fields)
        except InvalidSearchQuery as exc:
            raise BadRequestAlert(self.entity_name, "badquery", str(exc)) from exc

        documents, total = await self.search_index.search(
            self.index_name,
            query,
            app_id=app_id if self.app_scoped else None,
            offset=params.offset,
            limit=params.per_page,
        )
        return [self.read_schema.model_validate(doc) for doc in documents], total

    async def link_fields(self, entity: ModelT) -> dict[str, Any]:
        """Relation id lists merged into the read model."""
        return {}

    async def to_read(self, entity: ModelT) -> BaseModel:
        data = entity.model_dump()
        data.update(await self.link_fields(entity))
        return self.read_schema.model_validate(data)

    async def document(self, entity: ModelT) -> dict[str, Any]:
        read = await self.to_read(entity)
        return read.model_dump(mode="json", exclude=set(self.private_fields))

    async def owner_app_key(self, entity: ModelT) -> Optional[str]:
        app_id = getattr(entity, "app_id", None)
        if app_id is None:
            return None
        app = await self.session.get(SecurityApp, app_id)
        return app.app_key if app else None

    async def payload(self, entity: ModelT) -> dict[str, Any]:
        """Snapshot handed to the notifier; carries the owning app key."""
        data = await self.document(entity)
        data["app_key"] = await self.owner_app_key(entity)
        return data

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: BaseModel, ctx: TenantContext) -> ModelT:
        entity = self.model()
        return await self._save(entity, data, ctx, UpdateOperation.CREATED)

    async def update(self, entity: ModelT, data: BaseModel, ctx: TenantContext) -> ModelT:
        return await self._save(entity, data, ctx, UpdateOperation.UPDATED)

    async def resolve_app_id(
        self, entity: ModelT, data: BaseModel, ctx: TenantContext
    ) -> Optional[int]:
        if ctx.app is not None:
            return ctx.app.id

        app_id = getattr(data, "app_id", None) or getattr(entity, "app_id", None)
        if app_id is None:
            if self.app_required:
                raise BadRequestAlert(
                    self.entity_name, "appmissing", f"A {self.entity_name} must belong to an app"
                )
            return None

        if await self.session.get(SecurityApp, app_id) is None:
            raise BadRequestAlert(self.entity_name, "appnotfound", f"App {app_id} does not exist")
        return app_id

    async def validate(
        self, entity: ModelT, data: BaseModel, app_id: Optional[int]
    ) -> None:
        if self.unique_names:
            duplicate = await self.find_by_app_and_name(app_id, data.name, exclude_id=entity.id)
            if duplicate is not None:
                raise BadRequestAlert(
                    self.entity_name,
                    "nameexists",
                    f"A {self.entity_name} named '{data.name}' already exists in this app",
                )

    async def before_flush(self, entity: ModelT, data: BaseModel) -> None:
        pass

    async def write_links(self, entity: ModelT, data: BaseModel) -> None:
        pass

    async def before_delete(self, entity: ModelT) -> None:
        pass

    async def _save(
        self,
        entity: ModelT,
        data: BaseModel,
        ctx: TenantContext,
        operation: UpdateOperation,
    ) -> ModelT:
        log.debug(f"{self.log_prefix}.save_requested", id=entity.id, operation=operation.value)

        app_id = await self.resolve_app_id(entity, data, ctx) if self.app_scoped else None
        if self.app_scoped and entity.id is not None and entity.app_id is not None:
            if app_id != entity.app_id:
                raise BadRequestAlert(
                    self.entity_name,
                    "badrelation",
                    f"{self.entity_name} {entity.id} belongs to another app",
                )
        await self.validate(entity, data, app_id)

        for field in self.writable_fields:
            setattr(entity, field, getattr(data, field))
        if self.app_scoped:
            entity.app_id = app_id
        self._stamp(entity, ctx, operation)
        await self.before_flush(entity, data)

        self.session.add(entity)
        await self.session.flush()
        await self.write_links(entity, data)
        await self.reindex(entity)
        payload = await self.payload(entity) if self.kind else None
        await self.session.commit()

        log.info(f"{self.log_prefix}.saved", id=entity.id, operation=operation.value, app_id=app_id)
        if self.kind and self.notifier is not None:
            await self.notifier.send(operation, self.kind, payload)
        return entity

    async def delete(self, entity_id: int, ctx: TenantContext) -> None:
        log.debug(f"{self.log_prefix}.delete_requested", id=entity_id, actor=ctx.actor)
        entity = await self.get_or_404(entity_id, ctx)

        # Resolve the owner before the row is gone.
        payload = await self.payload(entity) if self.kind else None

        await self.before_delete(entity)
        await self.session.delete(entity)
        await self.search_index.delete(self.index_name, entity_id)
        await self.session.commit()

        log.info(f"{self.log_prefix}.deleted", id=entity_id, actor=ctx.actor)
        if self.kind and self.notifier is not None:
            await self.notifier.send(UpdateOperation.DELETED, self.kind, payload)

    async def reindex(self, entity: ModelT) -> None:
        await self.search_index.index(
            self.index_name,
            entity.id,
            await self.document(entity),
            app_id=getattr(entity, "app_id", None),
        )

    async def reindex_ids(self, ids: Iterable[int]) -> None:
        for entity_id in ids:
            entity = await self.find_one(entity_id)
            if entity is not None:
                await self.reindex(entity)

    async def ensure_same_app(
        self, model: type[SQLModel], ids: Iterable[int], app_id: Optional[int], label: str
    ) -> None:
        """Reject relation ids that do not exist or belong to another app."""
        wanted = set(ids)
        if not wanted:
            return
        result = await self.session.execute(
            select(model.id).where(model.id.in_(wanted), model.app_id == app_id)
        )
        found = {row[0] for row in result.all()}
        missing = wanted - found
        if missing:
            raise BadRequestAlert(
                self.entity_name,
                "badrelation",
                f"Unknown {label} for this app: {sorted(missing)}",
            )

    @staticmethod
    def _stamp(entity: SQLModel, ctx: TenantContext, operation: UpdateOperation) -> None:
        if not isinstance(entity, AuditingMixin):
            return
        now = datetime.now(timezone.utc)
        if operation is UpdateOperation.CREATED:
            entity.created_by = ctx.actor
            entity.created_date = now
        entity.last_modified_by = ctx.actor
        entity.last_modified_date = now

"""
CRUD router shared by every security entity.

    POST   /{resource}               create (400 if the body carries an id)
    PUT    /{resource}               update (no id: behaves as create)
    GET    /{resource}               page of entities (X-Total-Count, Link)
    GET    /{resource}/{id}          one entity, or 404 with no body
    DELETE /{resource}/{id}          delete
    GET    /_search/{resource}       search the index mirror

Annotations here are evaluated eagerly: the schemas are closure variables.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.alerts import (
    entity_creation_alert,
    entity_deletion_alert,
    entity_update_alert,
)
from app.core.context import TenantContext, get_tenant_context
from app.core.database import get_session
from app.core.errors import BadRequestAlert
from app.core.notifier import ResourceUpdateNotifier, get_notifier
from app.core.pagination import PageParams, page_params, pagination_headers
from app.services.base import SecurityEntityService

log = structlog.get_logger()


def service_dependency(service_class: type[SecurityEntityService]):
    def get_service(
        session: AsyncSession = Depends(get_session),
        notifier: ResourceUpdateNotifier = Depends(get_notifier),
    ) -> SecurityEntityService:
        return service_class(session, notifier)

    return get_service


def build_crud_router(
    *,
    path: str,
    service_class: type[SecurityEntityService],
    write_schema: type,
    read_schema: type,
) -> APIRouter:
    router = APIRouter()
    entity_name = service_class.entity_name
    base_url = f"/api/{path}"
    get_service = service_dependency(service_class)

    async def _create(body, response: Response, ctx: TenantContext, service) -> object:
        if body.id is not None:
            raise BadRequestAlert(
                entity_name, "idexists", f"A new {entity_name} cannot already have an ID"
            )
        entity = await service.create(body, ctx)
        response.status_code = 201
        response.headers["Location"] = f"{base_url}/{entity.id}"
        response.headers.update(entity_creation_alert(entity_name, str(entity.id)))
        return await service.to_read(entity)

    @router.post(f"/{path}", response_model=read_schema, status_code=201)
    async def create_entity(
        body: write_schema,
        response: Response,
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        log.debug("rest.create", entity=entity_name)
        return await _create(body, response, ctx, service)

    @router.put(f"/{path}", response_model=read_schema)
    async def update_entity(
        body: write_schema,
        response: Response,
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        log.debug("rest.update", entity=entity_name, id=body.id)
        if body.id is None:
            return await _create(body, response, ctx, service)

        entity = await service.get_or_404(body.id)
        entity = await service.update(entity, body, ctx)
        response.headers.update(entity_update_alert(entity_name, str(entity.id)))
        return await service.to_read(entity)

    @router.get(f"/{path}", response_model=List[read_schema])
    async def list_entities(
        response: Response,
        appId: Optional[int] = Query(None),
        params: PageParams = Depends(page_params),
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        app_id = appId if appId is not None else ctx.app_id
        entities, total = await service.find_all(params, app_id)
        response.headers.update(
            pagination_headers(total, params, base_url, {"appId": appId})
        )
        return [await service.to_read(e) for e in entities]

    @router.get(f"/{path}/{{entity_id}}", response_model=read_schema)
    async def get_entity(
        entity_id: int,
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        entity = await service.get_or_404(entity_id, ctx)
        return await service.to_read(entity)

    @router.delete(f"/{path}/{{entity_id}}")
    async def delete_entity(
        entity_id: int,
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        log.debug("rest.delete", entity=entity_name, id=entity_id)
        await service.delete(entity_id, ctx)
        return Response(
            status_code=200, headers=entity_deletion_alert(entity_name, str(entity_id))
        )

    @router.get(f"/_search/{path}", response_model=List[read_schema])
    async def search_entities(
        response: Response,
        query: str = Query(...),
        params: PageParams = Depends(page_params),
        ctx: TenantContext = Depends(get_tenant_context),
        service: SecurityEntityService = Depends(get_service),
    ):
        results, total = await service.search(query, params, ctx.app_id)
        response.headers.update(
            pagination_headers(total, params, f"/api/_search/{path}", {"query": query})
        )
        return results

    return router

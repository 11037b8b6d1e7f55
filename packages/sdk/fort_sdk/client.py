"""
Fort client: snapshot loading plus live updates.

    async with FortClient(config) as client:
        client.cache.is_allowed(["admin"], "/api/orders")
"""

from __future__ import annotations

import httpx
import structlog

from fort_shared.schemas.updates import AuthorizationSnapshot, UpdateEvent

from .cache import AuthorizationCache
from .config import FortClientConfig
from .listener import UpdateHandler, UpdateListener

log = structlog.get_logger()

SNAPSHOT_PATH = "/api/security-resource-updates/snapshot"


class FortClient:
    def __init__(
        self,
        config: FortClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._transport = transport
        self._headers = config.auth_headers()
        self.cache = AuthorizationCache(config.app.app_key)
        self.listener = UpdateListener(
            config.server.url,
            self._headers,
            read_timeout=config.server.stream_read_timeout_seconds,
            verify_tls=config.server.verify_tls,
            transport=transport,
        )
        self.listener.on_update(self._apply_update)
        self.listener.on_connect(self._on_connect)
        self._extra_handlers: list[UpdateHandler] = []

    def on_update(self, handler: UpdateHandler) -> None:
        """Register a handler called after each update is applied to the cache."""
        self._extra_handlers.append(handler)

    async def fetch_snapshot(self) -> AuthorizationSnapshot:
        async with httpx.AsyncClient(
            base_url=self._config.server.url,
            timeout=self._config.server.request_timeout_seconds,
            verify=self._config.server.verify_tls,
            transport=self._transport,
        ) as client:
            response = await client.get(SNAPSHOT_PATH, headers=self._headers)
            response.raise_for_status()
            return AuthorizationSnapshot.model_validate(response.json())

    async def refresh(self) -> None:
        """Replace the cache with a fresh snapshot."""
        self.cache.load(await self.fetch_snapshot())

    async def start(self) -> None:
        await self.refresh()
        await self.listener.start()
        log.info("fort_client.started", app_key=self._config.app.app_key)

    async def stop(self) -> None:
        await self.listener.stop()
        log.info("fort_client.stopped", app_key=self._config.app.app_key)

    async def __aenter__(self) -> FortClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _on_connect(self, connection: int) -> None:
        # Updates sent before this connection subscribed are lost, including
        # those committed after the snapshot in start(); re-prime every time.
        log.info("fort_client.repriming", connection=connection)
        await self.refresh()

    async def _apply_update(self, event: UpdateEvent) -> None:
        if not self.cache.apply(event):
            return
        for handler in self._extra_handlers:
            try:
                await handler(event)
            except Exception:
                log.exception("fort_client.handler_error", event=event.event_name)

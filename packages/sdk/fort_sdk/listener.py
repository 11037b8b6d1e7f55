"""
SSE listener for the Fort resource update stream.

Maintains a persistent connection with:
- Automatic reconnection with exponential backoff
- Read timeout detection (the server pings periodically)
- Connect hooks, so callers can re-prime state after a reconnect
- Graceful shutdown support
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable, Coroutine

import httpx
import structlog
from pydantic import ValidationError

from fort_shared.schemas.updates import UpdateEvent

log = structlog.get_logger()

STREAM_PATH = "/api/security-resource-updates/stream"

# Reconnection parameters
RECONNECT_BASE_SECONDS = 1.0
RECONNECT_MAX_SECONDS = 60.0
RECONNECT_MULTIPLIER = 2.0

UpdateHandler = Callable[[UpdateEvent], Coroutine[Any, Any, None]]
ConnectHandler = Callable[[int], Coroutine[Any, Any, None]]


class UpdateListener:
    """
    Persistent SSE connection to an app's resource update stream.

    Handles reconnection and event dispatch. A failing handler is logged and
    does not stop delivery to the other handlers.
    """

    def __init__(
        self,
        server_url: str,
        headers: dict[str, str],
        read_timeout: float = 60.0,
        verify_tls: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = server_url.rstrip("/") + STREAM_PATH
        self._headers = headers
        self._read_timeout = read_timeout
        self._verify_tls = verify_tls
        self._transport = transport

        self._handlers: list[UpdateHandler] = []
        self._connect_handlers: list[ConnectHandler] = []
        self._running = False
        self._connected = False
        self._connect_count = 0
        self._last_event_id: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def reconnect_count(self) -> int:
        return max(self._connect_count - 1, 0)

    @property
    def last_event_id(self) -> str | None:
        return self._last_event_id

    def on_update(self, handler: UpdateHandler) -> None:
        """Register an update handler."""
        self._handlers.append(handler)

    def on_connect(self, handler: ConnectHandler) -> None:
        """Register a hook called with the connection number on every (re)connect."""
        self._connect_handlers.append(handler)

    async def start(self) -> None:
        """Start the listener loop."""
        self._running = True
        self._task = asyncio.create_task(self._listen_loop())

    async def stop(self) -> None:
        """Gracefully stop the listener."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._connected = False
        log.info("update_listener.stopped", url=self._url)

    async def _listen_loop(self) -> None:
        backoff = RECONNECT_BASE_SECONDS

        while self._running:
            try:
                await self.connect_and_stream()
                backoff = RECONNECT_BASE_SECONDS  # Reset on clean disconnect
            except asyncio.CancelledError:
                raise
            except (httpx.HTTPError, OSError) as exc:
                log.warning(
                    "update_listener.connection_lost",
                    url=self._url,
                    error=str(exc),
                    backoff=backoff,
                )
            finally:
                self._connected = False

            if not self._running:
                break

            log.info(
                "update_listener.reconnecting",
                backoff=backoff,
                attempt=self._connect_count,
            )
            await asyncio.sleep(backoff)
            backoff = min(backoff * RECONNECT_MULTIPLIER, RECONNECT_MAX_SECONDS)

    async def connect_and_stream(self) -> None:
        """Open one stream and dispatch its events until it ends."""
        headers = {**self._headers, "Accept": "text/event-stream"}
        timeout = httpx.Timeout(10.0, read=self._read_timeout)

        async with httpx.AsyncClient(
            timeout=timeout,
            verify=self._verify_tls,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", self._url, headers=headers) as response:
                response.raise_for_status()
                self._connected = True
                self._connect_count += 1
                log.info(
                    "update_listener.connected",
                    url=self._url,
                    connection=self._connect_count,
                )
                for hook in self._connect_handlers:
                    await hook(self._connect_count)

                await self.consume(response.aiter_lines())

    async def consume(self, lines: AsyncIterator[str]) -> None:
        """Parse SSE lines and dispatch complete frames."""
        event_id: str | None = None
        data_lines: list[str] = []

        async for line in lines:
            if not self._running and self._task is not None:
                break

            line = line.rstrip("\n")
            if line.startswith("id:"):
                event_id = line[3:].strip()
            elif line.startswith("data:"):
                data_lines.append(line[5:].strip())
            elif line.startswith(":") or line.startswith("event:"):
                # Keepalive comment; the event name is repeated in the data
                pass
            elif line == "":
                if data_lines:
                    await self._dispatch("\n".join(data_lines), event_id)
                event_id = None
                data_lines = []

    async def _dispatch(self, data: str, event_id: str | None) -> None:
        try:
            event = UpdateEvent.model_validate_json(data)
        except ValidationError:
            log.warning("update_listener.parse_error", data=data[:200])
            return

        if event_id:
            self._last_event_id = event_id

        for handler in self._handlers:
            try:
                await handler(event)
            except Exception:
                log.exception(
                    "update_listener.handler_error",
                    event=event.event_name,
                    event_id=str(event.event_id),
                )

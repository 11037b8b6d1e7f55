"""
Tests for the update listener and the client wiring.

The server side is replaced by an httpx.MockTransport serving canned SSE
frames and a canned snapshot.
"""

from __future__ import annotations

import httpx
import pytest

from fort_sdk.client import SNAPSHOT_PATH, FortClient
from fort_sdk.config import FortClientConfig
from fort_sdk.listener import STREAM_PATH, UpdateListener
from fort_shared.schemas.common import ResourceKind, UpdateOperation
from fort_shared.schemas.updates import UpdateEvent

SNAPSHOT = {
    "app": {"id": 1, "app_name": "shop", "app_key": "abc123"},
    "roles": [{"id": 10, "name": "clerk", "app_id": 1, "resource_ids": [100]}],
    "groups": [],
    "resources": [{"id": 100, "name": "orders", "url": "/api/orders", "app_id": 1}],
    "navs": [],
}


def sse_frame(event: UpdateEvent) -> str:
    return (
        f"event: {event.event_name}\r\n"
        f"id: {event.event_id}\r\n"
        f"data: {event.model_dump_json()}\r\n\r\n"
    )


def role_deleted() -> UpdateEvent:
    return UpdateEvent(
        operation=UpdateOperation.DELETED,
        entity_kind=ResourceKind.ROLE,
        app_key="abc123",
        payload={"id": 10, "name": "clerk", "app_key": "abc123"},
    )


def mock_server(
    stream_body: str,
    seen: list[httpx.Request] | None = None,
    snapshots: list[dict] | None = None,
) -> httpx.MockTransport:
    """Serve `stream_body` on the stream; snapshots are served in order, the last one repeats."""
    pending = list(snapshots or [SNAPSHOT])

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.headers.get("X-App-Secret") != "s3cret":
            return httpx.Response(401, json={"error": {"code": "UNAUTHORIZED"}})
        if request.url.path == SNAPSHOT_PATH:
            snapshot = pending.pop(0) if len(pending) > 1 else pending[0]
            return httpx.Response(200, json=snapshot)
        if request.url.path == STREAM_PATH:
            return httpx.Response(
                200,
                content=stream_body.encode(),
                headers={"content-type": "text/event-stream"},
            )
        return httpx.Response(404)

    return httpx.MockTransport(handler)


HEADERS = {"X-App-Key": "abc123", "X-App-Secret": "s3cret"}


class TestUpdateListener:
    @pytest.mark.asyncio
    async def test_frames_are_parsed_and_dispatched(self):
        event = role_deleted()
        body = ": ping - 2026-01-01 00:00:00\r\n\r\n" + sse_frame(event)
        seen: list[httpx.Request] = []
        listener = UpdateListener("http://fort", HEADERS, transport=mock_server(body, seen))

        received: list[UpdateEvent] = []

        async def collect(e: UpdateEvent) -> None:
            received.append(e)

        listener.on_update(collect)
        await listener.connect_and_stream()

        assert [e.event_id for e in received] == [event.event_id]
        assert listener.last_event_id == str(event.event_id)
        assert seen[0].headers["Accept"] == "text/event-stream"
        assert seen[0].headers["X-App-Key"] == "abc123"

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        listener = UpdateListener("http://fort", HEADERS, transport=mock_server(sse_frame(role_deleted())))
        received: list[UpdateEvent] = []

        async def explode(e: UpdateEvent) -> None:
            raise RuntimeError("handler bug")

        async def collect(e: UpdateEvent) -> None:
            received.append(e)

        listener.on_update(explode)
        listener.on_update(collect)
        await listener.connect_and_stream()
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_malformed_frames_are_skipped(self):
        body = "data: {not json}\r\n\r\n" + sse_frame(role_deleted())
        listener = UpdateListener("http://fort", HEADERS, transport=mock_server(body))
        received: list[UpdateEvent] = []

        async def collect(e: UpdateEvent) -> None:
            received.append(e)

        listener.on_update(collect)
        await listener.connect_and_stream()
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_rejected_credentials_raise(self):
        listener = UpdateListener(
            "http://fort",
            {"X-App-Key": "abc123", "X-App-Secret": "wrong"},
            transport=mock_server(""),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await listener.connect_and_stream()
        assert not listener.connected

    @pytest.mark.asyncio
    async def test_connect_hooks_receive_connection_number(self):
        listener = UpdateListener("http://fort", HEADERS, transport=mock_server(""))
        connections: list[int] = []

        async def hook(number: int) -> None:
            connections.append(number)

        listener.on_connect(hook)
        await listener.connect_and_stream()
        await listener.connect_and_stream()
        assert connections == [1, 2]
        assert listener.reconnect_count == 1


class TestFortClient:
    @pytest.fixture
    def config(self, monkeypatch) -> FortClientConfig:
        monkeypatch.setenv("FORT_APP_SECRET", "s3cret")
        return FortClientConfig(server={"url": "http://fort"}, app={"app_key": "abc123"})

    @pytest.mark.asyncio
    async def test_refresh_primes_cache(self, config):
        client = FortClient(config, transport=mock_server(""))
        await client.refresh()
        assert client.cache.is_allowed(["clerk"], "/api/orders")

    @pytest.mark.asyncio
    async def test_stream_updates_reach_cache_and_handlers(self, config):
        client = FortClient(config, transport=mock_server(sse_frame(role_deleted())))
        await client.refresh()
        applied: list[str] = []

        async def record(event: UpdateEvent) -> None:
            applied.append(event.event_name)

        client.on_update(record)
        await client.listener.connect_and_stream()

        assert applied == ["SECURITY_ROLE.DELETE"]
        assert not client.cache.is_allowed(["clerk"], "/api/orders")

    @pytest.mark.asyncio
    async def test_reconnect_reprimes_cache(self, config):
        client = FortClient(config, transport=mock_server(sse_frame(role_deleted())))
        await client.refresh()

        await client.listener.connect_and_stream()
        assert 10 not in client.cache.roles

        # second connection reloads the snapshot before streaming
        primed: list[bool] = []

        async def check(number: int) -> None:
            primed.append(10 in client.cache.roles)

        client.listener.on_connect(check)
        await client.listener.connect_and_stream()
        assert primed == [True]
        assert 10 not in client.cache.roles


    @pytest.mark.asyncio
    async def test_first_connect_picks_up_changes_after_snapshot(self, config):
        # A role created between the startup snapshot and the first subscription.
        later = {
            **SNAPSHOT,
            "roles": SNAPSHOT["roles"] + [{"id": 11, "name": "auditor", "app_id": 1, "resource_ids": [100]}],
        }
        client = FortClient(config, transport=mock_server("", snapshots=[SNAPSHOT, later]))
        await client.refresh()
        assert not client.cache.is_allowed(["auditor"], "/api/orders")

        await client.listener.connect_and_stream()
        assert client.listener.reconnect_count == 0
        assert client.cache.is_allowed(["auditor"], "/api/orders")

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, config):
        client = FortClient(config, transport=mock_server(sse_frame(role_deleted())))
        await client.refresh()
        applied: list[str] = []

        async def broken(event: UpdateEvent) -> None:
            raise RuntimeError("handler bug")

        async def record(event: UpdateEvent) -> None:
            applied.append(event.event_name)

        client.on_update(broken)
        client.on_update(record)
        await client.listener.connect_and_stream()

        assert applied == ["SECURITY_ROLE.DELETE"]
        assert 10 not in client.cache.roles

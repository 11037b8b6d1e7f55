"""
Resource update notifications.

Services call `send()` after a create/update/delete has committed. The event
is placed on the owning app's outbound queue and the request returns; a
per-app dispatcher task fans it out to every subscriber of that app.

Delivery is best-effort:
- a payload without an app key is dropped with a warning
- a subscriber whose queue is full loses the event (counted in `dropped`)
- a failing or slow callback is logged and skipped
None of these affect other subscribers, and none reach the HTTP caller.

With the Redis relay enabled, `send()` publishes to `fort:updates:<app_key>`
and every server process feeds what it receives into local delivery, so a
subscriber connected to any worker sees changes made on any other.
"""

from __future__ import annotations

import asyncio
import uuid
from functools import lru_cache
from typing import Any, Awaitable, Callable, Mapping, Optional

import redis.asyncio as redis
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.redis import get_redis
from fort_shared.schemas.common import ResourceKind, UpdateOperation
from fort_shared.schemas.updates import UpdateEvent

log = structlog.get_logger()

CHANNEL_PREFIX = "fort:updates:"
CALLBACK_TIMEOUT = 5.0  # seconds
RELAY_RETRY_BASE_SECONDS = 1.0
RELAY_RETRY_MAX_SECONDS = 30.0

UpdateCallback = Callable[[UpdateEvent], Awaitable[None]]
RedisFactory = Callable[[], Awaitable[redis.Redis]]


def channel_for(app_key: str) -> str:
    return f"{CHANNEL_PREFIX}{app_key}"


class SubscriberLimitExceeded(Exception):
    def __init__(self, app_key: str, limit: int):
        super().__init__(f"App {app_key} already has {limit} subscribers")
        self.app_key = app_key
        self.limit = limit


class Subscription:
    """Handle returned by `subscribe()`; either queue-backed or callback-backed."""

    def __init__(
        self,
        app_key: str,
        queue_size: int,
        callback: Optional[UpdateCallback] = None,
    ):
        self.id = uuid.uuid4()
        self.app_key = app_key
        self.dropped = 0
        self._callback = callback
        self._queue: asyncio.Queue[UpdateEvent] = asyncio.Queue(maxsize=queue_size)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self, timeout: float | None = None) -> UpdateEvent | None:
        """Next event, or None if nothing arrived within `timeout` seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def deliver(self, event: UpdateEvent) -> None:
        if self._callback is not None:
            await asyncio.wait_for(self._callback(event), CALLBACK_TIMEOUT)
        else:
            self._queue.put_nowait(event)


class _AppChannel:
    def __init__(self, app_key: str, queue_size: int):
        self.app_key = app_key
        self.outbound: asyncio.Queue[UpdateEvent] = asyncio.Queue(maxsize=queue_size)
        self.subscribers: dict[uuid.UUID, Subscription] = {}
        self.task: asyncio.Task | None = None


class ResourceUpdateNotifier:
    def __init__(
        self,
        *,
        queue_size: int = 1000,
        subscriber_queue_size: int = 100,
        max_subscribers_per_app: int = 50,
        redis_factory: Optional[RedisFactory] = None,
    ):
        self._queue_size = queue_size
        self._subscriber_queue_size = subscriber_queue_size
        self._max_subscribers = max_subscribers_per_app
        self._redis_factory = redis_factory
        self._channels: dict[str, _AppChannel] = {}
        self._relay_task: asyncio.Task | None = None

    @property
    def relay_enabled(self) -> bool:
        return self._redis_factory is not None

    # --- Subscriptions ---

    def subscribe(self, app_key: str, callback: Optional[UpdateCallback] = None) -> Subscription:
        """Register a subscriber for one app. Must be called from a running loop."""
        channel = self._channels.get(app_key)
        if channel is None:
            channel = _AppChannel(app_key, self._queue_size)
            self._channels[app_key] = channel

        if len(channel.subscribers) >= self._max_subscribers:
            raise SubscriberLimitExceeded(app_key, self._max_subscribers)

        subscription = Subscription(app_key, self._subscriber_queue_size, callback)
        channel.subscribers[subscription.id] = subscription
        if channel.task is None:
            channel.task = asyncio.get_running_loop().create_task(self._dispatch_loop(channel))

        log.info(
            "resource_update.subscribed",
            app_key=app_key,
            subscription=str(subscription.id),
            subscribers=len(channel.subscribers),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        channel = self._channels.get(subscription.app_key)
        if channel is None or channel.subscribers.pop(subscription.id, None) is None:
            return

        log.info(
            "resource_update.unsubscribed",
            app_key=subscription.app_key,
            subscription=str(subscription.id),
            dropped=subscription.dropped,
        )
        if not channel.subscribers:
            if channel.task is not None:
                channel.task.cancel()
            del self._channels[subscription.app_key]

    def subscriber_count(self, app_key: str) -> int:
        channel = self._channels.get(app_key)
        return len(channel.subscribers) if channel else 0

    def at_capacity(self, app_key: str) -> bool:
        return self.subscriber_count(app_key) >= self._max_subscribers

    # --- Publishing ---

    async def send(
        self,
        operation: UpdateOperation,
        entity_kind: ResourceKind,
        payload: Mapping[str, Any],
    ) -> None:
        """Publish a committed change. Never raises."""
        app_key = payload.get("app_key") if payload else None
        if not app_key:
            log.warning(
                "resource_update.dropped",
                reason="app_key_unresolved",
                operation=operation.value,
                entity_kind=entity_kind.value,
                entity_id=payload.get("id") if payload else None,
            )
            return

        try:
            event = UpdateEvent(
                operation=operation,
                entity_kind=entity_kind,
                app_key=app_key,
                payload=dict(payload),
            )
        except ValidationError as exc:
            log.warning("resource_update.dropped", reason="invalid_event", error=str(exc))
            return

        if self._redis_factory is not None:
            try:
                client = await self._redis_factory()
                await client.publish(channel_for(app_key), event.model_dump_json())
                return
            except (RedisError, OSError) as exc:
                log.warning(
                    "resource_update.relay_failed",
                    app_key=app_key,
                    event_id=str(event.event_id),
                    error=str(exc),
                )

        self.deliver_local(event)

    def deliver_local(self, event: UpdateEvent) -> None:
        """Queue an event for this process's subscribers of its app."""
        channel = self._channels.get(event.app_key)
        if channel is None:
            log.debug("resource_update.no_subscribers", app_key=event.app_key)
            return
        try:
            channel.outbound.put_nowait(event)
        except asyncio.QueueFull:
            log.warning(
                "resource_update.dropped",
                reason="outbound_queue_full",
                app_key=event.app_key,
                event_id=str(event.event_id),
            )

    async def _dispatch_loop(self, channel: _AppChannel) -> None:
        while True:
            event = await channel.outbound.get()
            try:
                for subscription in list(channel.subscribers.values()):
                    await self._deliver_one(subscription, event)
            finally:
                channel.outbound.task_done()

    async def _deliver_one(self, subscription: Subscription, event: UpdateEvent) -> None:
        try:
            await subscription.deliver(event)
        except asyncio.QueueFull:
            subscription.dropped += 1
            log.warning(
                "resource_update.subscriber_overflow",
                app_key=event.app_key,
                subscription=str(subscription.id),
                dropped=subscription.dropped,
            )
        except Exception:
            log.exception(
                "resource_update.delivery_failed",
                app_key=event.app_key,
                subscription=str(subscription.id),
                event=event.event_name,
            )

    async def join(self) -> None:
        """Wait until every queued event has been dispatched."""
        for channel in list(self._channels.values()):
            await channel.outbound.join()

    # --- Lifecycle ---

    async def start(self) -> None:
        if self._redis_factory is not None and self._relay_task is None:
            self._relay_task = asyncio.create_task(self._relay_loop())

    async def close(self) -> None:
        tasks = [c.task for c in self._channels.values() if c.task is not None]
        if self._relay_task is not None:
            tasks.append(self._relay_task)
            self._relay_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._channels.clear()

    async def _relay_loop(self) -> None:
        backoff = RELAY_RETRY_BASE_SECONDS
        while True:
            try:
                await self._consume_relay()
            except asyncio.CancelledError:
                raise
            except (RedisError, OSError) as exc:
                log.warning("resource_update.relay_lost", error=str(exc), backoff=backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, RELAY_RETRY_MAX_SECONDS)

    async def _consume_relay(self) -> None:
        assert self._redis_factory
        client = await self._redis_factory()
        pubsub = client.pubsub()
        await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
        log.info("resource_update.relay_connected")
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None or message.get("type") != "pmessage":
                    continue
                try:
                    event = UpdateEvent.model_validate_json(message["data"])
                except ValidationError:
                    log.warning("resource_update.relay_parse_error", channel=message.get("channel"))
                    continue
                self.deliver_local(event)
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()


@lru_cache
def get_notifier() -> ResourceUpdateNotifier:
    """FastAPI dependency returning the process-wide notifier."""
    settings = get_settings()
    return ResourceUpdateNotifier(
        queue_size=settings.update_queue_size,
        subscriber_queue_size=settings.subscriber_queue_size,
        max_subscribers_per_app=settings.max_subscribers_per_app,
        redis_factory=get_redis if settings.update_relay_enabled else None,
    )

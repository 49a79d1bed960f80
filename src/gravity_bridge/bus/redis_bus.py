"""Redis pub/sub event bus.

Envelopes are published as JSON-encoded bus events:

    {"id": ..., "source": <provider id>, "timestamp": ..., "payload": <envelope>}

Each subscription runs its own listener task. Delivery, ordering and
reconnection are whatever Redis pub/sub provides. A listener that loses
its connection stops, and `watch()` raises the failure.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any
from urllib.parse import urlparse

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from gravity_bridge.bus.ports import EventHandler, Unsubscribe, wrap_event
from gravity_bridge.envelope.model import Envelope
from gravity_bridge.errors import PublishError, SubscriptionError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_PORT = 6379


def redis_url_from_server_url(server_url: str, port: int = DEFAULT_REDIS_PORT) -> str:
    """Derive the Redis URL from the Gravity server URL (same host)."""

    parsed = urlparse(server_url if "://" in server_url else f"http://{server_url}")
    host = parsed.hostname or "localhost"
    return f"redis://{host}:{port}"


class RedisEventBus:
    def __init__(
        self,
        redis_url: str,
        provider_id: str,
        password: str | None = None,
        client: aioredis.Redis | None = None,
    ) -> None:
        self.redis_url = redis_url
        self.provider_id = provider_id
        self._password = password or None
        self._redis = client
        self._listeners: set[asyncio.Task[None]] = set()
        self._failed = asyncio.Event()
        self._failure: BaseException | None = None

    @classmethod
    def from_credentials(
        cls,
        server_url: str,
        api_key: str,
        provider_id: str,
        redis_url: str | None = None,
    ) -> RedisEventBus:
        """Build a bus from Gravity credentials. The API key is the Redis password."""

        return cls(
            redis_url=redis_url or redis_url_from_server_url(server_url),
            provider_id=provider_id,
            password=api_key,
        )

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            logger.info("Connecting to Redis at %s", self.redis_url)
            self._redis = aioredis.from_url(
                self.redis_url,
                password=self._password,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def publish(self, channel: str, envelope: Envelope) -> None:
        data = json.dumps(wrap_event(envelope, self.provider_id), ensure_ascii=False)
        try:
            await self._client().publish(channel, data)
        except RedisError as e:
            raise PublishError(f"Failed to publish to {channel}: {e}", channel=channel) from e
        logger.debug(
            "Published %s envelope to %s",
            envelope.type.value if envelope.type else "base",
            channel,
            extra={"envelope_id": envelope.id, "conversation_id": envelope.conversation_id},
        )

    async def subscribe(self, channel: str, handler: EventHandler) -> Unsubscribe:
        pubsub = self._client().pubsub()
        try:
            await pubsub.subscribe(channel)
        except RedisError as e:
            await pubsub.aclose()
            raise SubscriptionError(
                f"Failed to subscribe to {channel}: {e}", channel=channel
            ) from e
        logger.info("Subscribed to %s", channel)

        task = asyncio.create_task(self._listen(pubsub, channel, handler))
        self._listeners.add(task)
        task.add_done_callback(self._on_listener_done)

        async def unsubscribe() -> None:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            try:
                await pubsub.unsubscribe(channel)
            except RedisError as e:
                logger.warning("Could not unsubscribe from %s: %s", channel, e)
            finally:
                await pubsub.aclose()
            logger.info("Unsubscribed from %s", channel)

        return unsubscribe

    async def _listen(self, pubsub: Any, channel: str, handler: EventHandler) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = json.loads(message["data"])
                except (TypeError, json.JSONDecodeError):
                    logger.warning("Dropping non-JSON message on %s", channel)
                    continue
                if not isinstance(event, dict):
                    logger.warning("Dropping non-object message on %s", channel)
                    continue
                try:
                    await handler(event)
                except Exception:
                    logger.exception("Event handler failed on %s", channel)
        except RedisError as e:
            logger.error("Listener on %s stopped: %s", channel, e)
            raise SubscriptionError(
                f"Lost subscription to {channel}: {e}", channel=channel
            ) from e

    def _on_listener_done(self, task: asyncio.Task[None]) -> None:
        self._listeners.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        if self._failure is None:
            self._failure = task.exception()
        self._failed.set()

    async def watch(self) -> None:
        """Wait until a listener dies, then raise its error.

        Raises:
            SubscriptionError: The first listener failure.
        """

        await self._failed.wait()
        raise self._failure or SubscriptionError("Listener stopped")

    async def close(self) -> None:
        for task in list(self._listeners):
            task.cancel()
        for task in list(self._listeners):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

"""Bus interfaces.

Adapters depend on these protocols only. The Redis and in-memory clients
both implement them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from gravity_bridge.envelope.model import Envelope

EVENT_CHANNEL_PREFIX = "gravity:"
QUERY_MESSAGE_CHANNEL = "QUERY_MESSAGE"
AI_RESULT_CHANNEL = "AI_RESULT"

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


@runtime_checkable
class Publisher(Protocol):
    async def publish(self, channel: str, envelope: Envelope) -> None: ...


@runtime_checkable
class EventBus(Publisher, Protocol):
    async def subscribe(self, channel: str, handler: EventHandler) -> Unsubscribe: ...

    async def watch(self) -> None:
        """Return or raise only when a subscription has failed."""

    async def close(self) -> None: ...


def wrap_event(envelope: Envelope, source: str) -> dict[str, Any]:
    """Wrap an envelope in the bus event record `{id, source, timestamp, payload}`."""

    return {
        "id": envelope.id,
        "source": source,
        "timestamp": envelope.timestamp,
        "payload": envelope.to_json(),
    }


def unwrap_event(event: dict[str, Any]) -> dict[str, Any]:
    """Return the event payload, or the event itself if it carries none."""

    payload = event.get("payload")
    return payload if isinstance(payload, dict) else event

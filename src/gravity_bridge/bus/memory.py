"""In-process event bus.

Delivers events to subscribers of the same process and keeps a record of
everything published. Used by tests and by the CLI `--dry-run` mode.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from gravity_bridge.bus.ports import EventHandler, Unsubscribe, wrap_event
from gravity_bridge.envelope.model import Envelope
from gravity_bridge.errors import PublishError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PublishedEvent:
    channel: str
    envelope: Envelope
    event: dict[str, Any]


class InMemoryEventBus:
    def __init__(self, provider_id: str = "memory") -> None:
        self.provider_id = provider_id
        self.published: list[PublishedEvent] = []
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._closed = False

    def envelopes(self, channel: str | None = None) -> list[Envelope]:
        return [p.envelope for p in self.published if channel is None or p.channel == channel]

    async def publish(self, channel: str, envelope: Envelope) -> None:
        if self._closed:
            raise PublishError("Bus is closed", channel=channel)
        event = wrap_event(envelope, self.provider_id)
        self.published.append(PublishedEvent(channel=channel, envelope=envelope, event=event))
        logger.debug("Published %s to %s", envelope.type, channel)
        await self.deliver(channel, event)

    async def deliver(self, channel: str, event: dict[str, Any]) -> None:
        """Hand a raw event to every subscriber of `channel`."""

        for handler in list(self._handlers.get(channel, [])):
            await handler(event)

    async def subscribe(self, channel: str, handler: EventHandler) -> Unsubscribe:
        self._handlers[channel].append(handler)

        async def unsubscribe() -> None:
            try:
                self._handlers[channel].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def subscriber_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, []))

    async def watch(self) -> None:
        """Wait until cancelled. In-process delivery has no connection to lose."""

        await asyncio.Event().wait()

    async def close(self) -> None:
        self._closed = True
        self._handlers.clear()

"""Input adapter: subscribes to a bus channel and hands each inbound message
to the workflow."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from gravity_bridge.bus.ports import (
    EVENT_CHANNEL_PREFIX,
    QUERY_MESSAGE_CHANNEL,
    EventBus,
    Unsubscribe,
    unwrap_event,
)

logger = logging.getLogger(__name__)

Emit = Callable[[dict[str, Any]], Awaitable[None] | None]


class InboundMessage(BaseModel):
    """A user query as it arrives from the bus. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message: str = ""
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "sessionId", "conversation_id"),
    )
    chat_id: str | None = Field(
        default=None, validation_alias=AliasChoices("chatId", "chat_id")
    )
    user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )


async def _call(emit: Emit, message: dict[str, Any]) -> None:
    result = emit(message)
    if inspect.isawaitable(result):
        await result


class InputNode:
    display_name = "Gravity Input"

    def __init__(
        self,
        bus: EventBus,
        channel: str = QUERY_MESSAGE_CHANNEL,
        channel_prefix: str = EVENT_CHANNEL_PREFIX,
        log: logging.Logger | None = None,
    ) -> None:
        self.bus = bus
        self.channel = channel
        self.channel_prefix = channel_prefix
        self.log = log or logger

    @property
    def full_channel(self) -> str:
        return f"{self.channel_prefix}{self.channel}"

    async def start(self, emit: Emit) -> Unsubscribe:
        """Subscribe and forward every inbound message to `emit`.

        If `emit` fails for a message, it is called once more with
        `{"error": ..., "originalMessage": message}`.

        Returns:
            An async close function that unsubscribes.
        """

        async def on_event(event: dict[str, Any]) -> None:
            message = unwrap_event(event)
            self.log.debug("Received event on %s", self.full_channel)
            try:
                await _call(emit, message)
            except Exception as e:
                self.log.exception("Error processing message")
                await _call(emit, {"error": str(e), "originalMessage": message})

        self.log.info("Subscribing to channel: %s", self.full_channel)
        unsubscribe = await self.bus.subscribe(self.full_channel, on_event)

        async def close() -> None:
            self.log.info("Unsubscribing from channel: %s", self.full_channel)
            await unsubscribe()

        return close

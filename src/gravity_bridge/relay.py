"""Query-to-answer relay.

Listens for user queries on the bus and answers each one by streaming a
model response back into the same conversation.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from gravity_bridge.bus.ports import (
    AI_RESULT_CHANNEL,
    EVENT_CHANNEL_PREFIX,
    QUERY_MESSAGE_CHANNEL,
    EventBus,
    Unsubscribe,
)
from gravity_bridge.errors import BridgeError
from gravity_bridge.nodes.chat import ChatNode, ChatOutputs, ChatRequest, StreamTarget
from gravity_bridge.nodes.input import InboundMessage, InputNode

logger = logging.getLogger(__name__)


class ChatRelay:
    def __init__(
        self,
        bus: EventBus,
        chat: ChatNode,
        template: ChatRequest | None = None,
        query_channel: str = QUERY_MESSAGE_CHANNEL,
        result_channel: str = AI_RESULT_CHANNEL,
        channel_prefix: str = EVENT_CHANNEL_PREFIX,
        log: logging.Logger | None = None,
    ) -> None:
        self.bus = bus
        self.chat = chat
        self.template = template or ChatRequest()
        self.result_channel = result_channel
        self.log = log or logger
        self.input = InputNode(bus, query_channel, channel_prefix, log=self.log)

    def target_for(self, inbound: InboundMessage) -> StreamTarget:
        """Stream target for a query. Missing ids fall back to the conversation id."""

        conversation_id = inbound.conversation_id or ""
        return StreamTarget(
            chat_id=inbound.chat_id or conversation_id,
            conversation_id=conversation_id,
            user_id=inbound.user_id or conversation_id,
            channel=self.result_channel,
        )

    async def handle(self, message: dict[str, Any]) -> ChatOutputs | None:
        if "error" in message and "originalMessage" in message:
            self.log.error("Dropping failed query: %s", message["error"])
            return None
        try:
            inbound = InboundMessage.model_validate(message)
        except PydanticValidationError:
            self.log.warning("Dropping malformed query", extra={"keys": sorted(message)})
            return None

        request = self.template.model_copy(update={"message": inbound.message})
        try:
            outputs = await self.chat.execute(request, publish_to=self.target_for(inbound))
        except BridgeError as e:
            self.log.error(
                "Could not answer query: %s",
                e,
                extra={"conversation_id": inbound.conversation_id},
            )
            return None
        return outputs

    async def start(self) -> Unsubscribe:
        self.log.info("Relaying %s to %s", self.input.full_channel, self.result_channel)
        return await self.input.start(self.handle)

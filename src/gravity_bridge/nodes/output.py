"""Output adapter: publishes a final message of one of the user-facing types."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gravity_bridge.bus.ports import AI_RESULT_CHANNEL, Publisher
from gravity_bridge.envelope.encoders import (
    encode_action_suggestion,
    encode_image_response,
    encode_json_data,
    encode_text,
    encode_tool_output,
)
from gravity_bridge.envelope.model import Envelope, build_base_envelope
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.errors import MalformedPayloadError, NodeOperationError
from gravity_bridge.nodes.base import (
    ErrorHandling,
    Item,
    NodeIdentity,
    handle_item_error,
    item_at,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

OUTPUT_TYPES: frozenset[MessageType] = frozenset(
    {
        MessageType.TEXT,
        MessageType.JSON_DATA,
        MessageType.IMAGE_RESPONSE,
        MessageType.TOOL_OUTPUT,
        MessageType.ACTION_SUGGESTION,
    }
)


class OutputRequest(BaseModel):
    """Parameters for one output item. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    chat_id: str = ""
    conversation_id: str = ""
    user_id: str = ""
    output_type: MessageType = MessageType.TEXT
    state: ChatState | None = None
    error_handling: ErrorHandling = ErrorHandling.THROW

    text_content: str = ""
    enable_audio: bool = False
    json_data: Any = "{}"
    json_data_field_name: str = "data"
    image_url: str = ""
    image_alt: str = ""
    tool_name: str = ""
    action_type: str = ""


class OutputNode:
    display_name = "Gravity Output"

    def __init__(
        self,
        publisher: Publisher,
        identity: NodeIdentity | None = None,
        channel: str = AI_RESULT_CHANNEL,
        log: logging.Logger | None = None,
    ) -> None:
        self.publisher = publisher
        self.identity = identity or NodeIdentity()
        self.channel = channel
        self.log = log or logger

    def build_envelope(self, request: OutputRequest) -> Envelope:
        base = build_base_envelope(
            request.chat_id,
            request.conversation_id,
            request.user_id,
            self.identity.provider_id,
            request.state,
        )
        if request.output_type not in OUTPUT_TYPES:
            raise NodeOperationError(f"Unsupported output type: {request.output_type.value}")

        try:
            match request.output_type:
                case MessageType.TEXT:
                    return encode_text(base, request.text_content, request.enable_audio)
                case MessageType.JSON_DATA:
                    return encode_json_data(base, request.json_data, request.json_data_field_name)
                case MessageType.IMAGE_RESPONSE:
                    return encode_image_response(base, request.image_url, request.image_alt)
                case MessageType.TOOL_OUTPUT:
                    return encode_tool_output(base, request.tool_name, request.json_data)
                case _:
                    return encode_action_suggestion(base, request.action_type, request.json_data)
        except MalformedPayloadError as e:
            raise NodeOperationError(
                f"Invalid JSON data for {request.output_type.value}"
            ) from e

    async def execute(
        self, requests: Sequence[OutputRequest], items: Sequence[Item] | None = None
    ) -> list[Item]:
        """Publish one envelope per request.

        Args:
            requests: Per-item parameters.
            items: Incoming items; their fields are carried into the results.

        Returns:
            One result record per request.

        Raises:
            NodeOperationError: For a failed item whose error handling is "throw".
        """
        results: list[Item] = []
        for index, request in enumerate(requests):
            item = item_at(items, index)
            try:
                envelope = self.build_envelope(request)
                self.log.info(
                    "Sending %s to conversation %s",
                    request.output_type.value,
                    request.conversation_id,
                    extra={"envelope_id": envelope.id, "provider_id": envelope.provider_id},
                )
                await self.publisher.publish(self.channel, envelope)
                results.append(
                    {
                        **item,
                        "success": True,
                        "outputType": request.output_type.value,
                        "state": envelope.state.value,
                        "timestamp": utc_now_iso(),
                        "conversationId": request.conversation_id,
                        "chatId": request.chat_id,
                        "userId": request.user_id,
                        "envelopeId": envelope.id,
                    }
                )
            except Exception as e:
                results.append(
                    handle_item_error(
                        e,
                        index,
                        continue_on_fail=request.error_handling is ErrorHandling.CONTINUE,
                        item=item,
                        log=self.log,
                    )
                )
        return results

"""Update adapter: progress updates, text chunks, structured data and metadata
for a message that is still being produced."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gravity_bridge.bus.ports import AI_RESULT_CHANNEL, Publisher
from gravity_bridge.envelope.encoders import (
    encode_json_data,
    encode_message_chunk,
    encode_metadata,
    encode_progress_update,
)
from gravity_bridge.envelope.model import Envelope, build_base_envelope
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.errors import MalformedPayloadError, NodeOperationError
from gravity_bridge.nodes.base import Item, NodeIdentity, handle_item_error, utc_now_iso

logger = logging.getLogger(__name__)

UPDATE_TYPES: frozenset[MessageType] = frozenset(
    {
        MessageType.PROGRESS_UPDATE,
        MessageType.MESSAGE_CHUNK,
        MessageType.JSON_DATA,
        MessageType.METADATA,
    }
)
TEXT_PREVIEW_LENGTH = 30


class UpdateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    chat_id: str = ""
    conversation_id: str = ""
    user_id: str = ""
    update_type: MessageType = MessageType.PROGRESS_UPDATE
    state: ChatState | None = None

    message: str = ""
    text: str = ""
    json_data: Any = "{}"
    json_data_field_name: str = "calls"
    metadata_key: str = ""
    metadata_value: str = ""


def _preview(text: str) -> str:
    if len(text) > TEXT_PREVIEW_LENGTH:
        return f"{text[:TEXT_PREVIEW_LENGTH]}..."
    return text


class UpdateNode:
    display_name = "Gravity Update"

    def __init__(
        self,
        publisher: Publisher,
        identity: NodeIdentity | None = None,
        channel: str = AI_RESULT_CHANNEL,
        continue_on_fail: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.publisher = publisher
        self.identity = identity or NodeIdentity()
        self.channel = channel
        self.continue_on_fail = continue_on_fail
        self.log = log or logger

    def build_envelope(self, request: UpdateRequest) -> tuple[Envelope, Item]:
        """Return the envelope to publish and the summary fields for the result."""

        base = build_base_envelope(
            request.chat_id,
            request.conversation_id,
            request.user_id,
            self.identity.provider_id,
            request.state,
        )
        match request.update_type:
            case MessageType.PROGRESS_UPDATE:
                return encode_progress_update(base, request.message), {"message": request.message}
            case MessageType.MESSAGE_CHUNK:
                return (
                    encode_message_chunk(base, request.text),
                    {"textPreview": _preview(request.text)},
                )
            case MessageType.JSON_DATA:
                try:
                    envelope = encode_json_data(
                        base, request.json_data, request.json_data_field_name
                    )
                except MalformedPayloadError as e:
                    raise NodeOperationError("Invalid JSON data") from e
                return envelope, {
                    "dataType": request.json_data_field_name,
                    "itemCount": len(envelope.data["items"]),
                }
            case MessageType.METADATA:
                envelope = encode_metadata(base, request.metadata_key, request.metadata_value)
                return envelope, {"key": request.metadata_key, "value": request.metadata_value}
            case _:
                raise NodeOperationError(f"Unsupported update type: {request.update_type.value}")

    async def execute(self, requests: Sequence[UpdateRequest]) -> list[Item]:
        results: list[Item] = []
        for index, request in enumerate(requests):
            try:
                envelope, summary = self.build_envelope(request)
                self.log.debug(
                    "Publishing %s update",
                    request.update_type.value,
                    extra={"envelope_id": envelope.id, "conversation_id": envelope.conversation_id},
                )
                await self.publisher.publish(self.channel, envelope)
                results.append(
                    {
                        "success": True,
                        "updateType": request.update_type.value,
                        "timestamp": utc_now_iso(),
                        **summary,
                    }
                )
            except Exception as e:
                results.append(
                    handle_item_error(
                        e, index, continue_on_fail=self.continue_on_fail, log=self.log
                    )
                )
        return results

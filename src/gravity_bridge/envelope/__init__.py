"""Event envelope core: builder, variant encoders, streaming aggregation, states."""

from gravity_bridge.envelope.encoders import (
    encode,
    encode_action_suggestion,
    encode_image_response,
    encode_json_data,
    encode_message_chunk,
    encode_metadata,
    encode_progress_update,
    encode_text,
    encode_tool_output,
)
from gravity_bridge.envelope.model import Envelope, build_base_envelope
from gravity_bridge.envelope.states import (
    ChatState,
    MessageType,
    StreamPhase,
    default_state_for,
    resolve_state,
)
from gravity_bridge.envelope.streaming import (
    StreamAggregator,
    StreamChunk,
    StreamResult,
    aggregate,
)

__all__ = [
    "ChatState",
    "Envelope",
    "MessageType",
    "StreamAggregator",
    "StreamChunk",
    "StreamPhase",
    "StreamResult",
    "aggregate",
    "build_base_envelope",
    "default_state_for",
    "encode",
    "encode_action_suggestion",
    "encode_image_response",
    "encode_json_data",
    "encode_message_chunk",
    "encode_metadata",
    "encode_progress_update",
    "encode_text",
    "encode_tool_output",
    "resolve_state",
]

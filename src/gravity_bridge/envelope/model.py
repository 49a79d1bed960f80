"""Envelope record and base builder.

An envelope is the unit published to the bus. It is immutable: producers
that need to correct something publish a new envelope.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from gravity_bridge.envelope.states import ChatState, MessageType, StreamPhase, resolve_state
from gravity_bridge.errors import ValidationError

_EMPTY_PAYLOAD: Mapping[str, Any] = MappingProxyType({})


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_envelope_id(timestamp: int | None = None) -> str:
    """Return an id of the form `<epoch-ms>-<random>`."""

    ts = timestamp if timestamp is not None else now_ms()
    return f"{ts}-{uuid.uuid4().hex[:12]}"


def format_provider_id(host: str, workflow_id: str | None, node_id: str | None) -> str:
    """Return the `<host>:<workflow>:<node>` id stamped on outbound envelopes."""

    return f"{host}:{workflow_id or 'unknown'}:{node_id or 'unknown'}"


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of a JSON-like value.

    Mappings become read-only mapping proxies and sequences become tuples.
    """

    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of `freeze`: plain dicts and lists, ready for JSON."""

    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True, slots=True)
class Envelope:
    id: str
    chat_id: str
    conversation_id: str
    user_id: str
    provider_id: str
    timestamp: int
    state: ChatState = ChatState.ACTIVE
    type: MessageType | None = None
    # metadata envelopes carry a pre-serialized JSON string
    data: Mapping[str, Any] | str = field(default_factory=lambda: _EMPTY_PAYLOAD)

    def with_payload(self, message_type: MessageType, data: Mapping[str, Any] | str) -> Envelope:
        """Return a new envelope carrying `data` under discriminant `message_type`.

        The payload is deep-copied, so later changes to `data` by the caller
        do not reach the envelope.
        """

        return replace(self, type=message_type, data=freeze(data))

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "chatId": self.chat_id,
            "conversationId": self.conversation_id,
            "userId": self.user_id,
            "providerId": self.provider_id,
            "timestamp": self.timestamp,
            "state": self.state.value,
        }
        if self.type is not None:
            out["type"] = self.type.value
            out["data"] = thaw(self.data)
        return out


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", field=name)
    return value


def build_base_envelope(
    chat_id: str,
    conversation_id: str,
    user_id: str,
    provider_id: str,
    state: ChatState | str | None = None,
) -> Envelope:
    """Build the identity/routing part shared by every outbound envelope.

    Args:
        chat_id: Chat surface the envelope renders into.
        conversation_id: Links related envelopes across a session.
        user_id: Owner of the conversation.
        provider_id: Opaque id of the producing adapter.
        state: Optional state override. Defaults to `active`.

    Returns:
        An envelope with no type and an empty payload.

    Raises:
        ValidationError: If any of the three correlation ids is empty, or
            `provider_id` is missing.
    """

    _require(chat_id, "chatId")
    _require(conversation_id, "conversationId")
    _require(user_id, "userId")
    if provider_id is None:
        raise ValidationError("providerId is required", field="providerId")

    ts = now_ms()
    return Envelope(
        id=new_envelope_id(ts),
        chat_id=chat_id,
        conversation_id=conversation_id,
        user_id=user_id,
        provider_id=provider_id,
        timestamp=ts,
        state=resolve_state(state, StreamPhase.ONE_SHOT),
    )

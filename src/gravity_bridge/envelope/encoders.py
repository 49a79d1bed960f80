"""Variant encoders.

Each encoder takes a base envelope (see `build_base_envelope`) plus the
variant's own inputs and returns a new envelope ready for publication.
Encoders never perform I/O.

Encoders that accept JSON (jsonData, toolOutput, actionSuggestion) take
either an already-decoded value or a JSON string. A `str` argument is
always treated as JSON text.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, assert_never

from gravity_bridge.envelope.model import Envelope
from gravity_bridge.envelope.states import MessageType
from gravity_bridge.errors import MalformedPayloadError, ValidationError

VOICE_CONFIG: dict[str, Any] = {"enabled": True, "textField": "text"}


@dataclass(frozen=True, slots=True)
class JsonObject:
    value: dict[str, Any]


@dataclass(frozen=True, slots=True)
class JsonArray:
    value: list[Any]


@dataclass(frozen=True, slots=True)
class JsonScalar:
    value: str | int | float | bool | None


JsonValue = JsonObject | JsonArray | JsonScalar


def parse_json_payload(raw: Any) -> Any:
    """Decode `raw` if it is a string, otherwise return it unchanged."""

    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Invalid JSON payload: {e.msg}", raw=raw) from e


def classify_json(value: Any) -> JsonValue:
    if isinstance(value, Mapping):
        return JsonObject(dict(value))
    if isinstance(value, (list, tuple)):
        return JsonArray(list(value))
    if value is None or isinstance(value, (str, int, float, bool)):
        return JsonScalar(value)
    raise MalformedPayloadError(f"Unsupported JSON value of type {type(value).__name__}")


def normalize_items(payload: JsonValue) -> list[Any]:
    """Canonical "sequence of items" shape: arrays pass through, anything else is wrapped."""

    match payload:
        case JsonArray(value=items):
            return items
        case JsonObject(value=obj):
            return [obj]
        case JsonScalar(value=scalar):
            return [scalar]
        case _:
            assert_never(payload)


def _json_value(raw: Any) -> Any:
    return classify_json(parse_json_payload(raw)).value


def encode_text(base: Envelope, text: str, enable_voice: bool = False) -> Envelope:
    data: dict[str, Any] = {"content": text}
    if enable_voice:
        data["voiceConfig"] = dict(VOICE_CONFIG)
    return base.with_payload(MessageType.TEXT, data)


def encode_json_data(base: Envelope, value: Any, data_type: str = "data") -> Envelope:
    items = normalize_items(classify_json(parse_json_payload(value)))
    return base.with_payload(MessageType.JSON_DATA, {"_dataType": data_type, "items": items})


def encode_image_response(base: Envelope, url: str, alt: str = "") -> Envelope:
    return base.with_payload(MessageType.IMAGE_RESPONSE, {"url": url, "alt": alt or ""})


def encode_tool_output(base: Envelope, tool: str, result: Any) -> Envelope:
    return base.with_payload(MessageType.TOOL_OUTPUT, {"tool": tool, "result": _json_value(result)})


def encode_action_suggestion(base: Envelope, action_type: str, payload: Any) -> Envelope:
    return base.with_payload(
        MessageType.ACTION_SUGGESTION, {"type": action_type, "payload": _json_value(payload)}
    )


def encode_progress_update(base: Envelope, message: str) -> Envelope:
    return base.with_payload(MessageType.PROGRESS_UPDATE, {"message": message})


def encode_message_chunk(base: Envelope, text: str) -> Envelope:
    return base.with_payload(MessageType.MESSAGE_CHUNK, {"text": text})


def encode_metadata(base: Envelope, key: str, value: str) -> Envelope:
    if not key:
        raise ValidationError("metadata key is required", field="metadataKey")
    return base.with_payload(
        MessageType.METADATA, json.dumps({key: value}, ensure_ascii=False, separators=(",", ":"))
    )


def encode(base: Envelope, message_type: MessageType | str, **fields: Any) -> Envelope:
    """Dispatch to the encoder for `message_type`.

    Raises:
        ValueError: If `message_type` is not a known message type.
        MalformedPayloadError: If a JSON string field does not parse.
    """

    kind = MessageType(message_type)
    match kind:
        case MessageType.TEXT:
            return encode_text(base, fields["text"], fields.get("enable_voice", False))
        case MessageType.JSON_DATA:
            return encode_json_data(base, fields["value"], fields.get("data_type", "data"))
        case MessageType.IMAGE_RESPONSE:
            return encode_image_response(base, fields["url"], fields.get("alt", ""))
        case MessageType.TOOL_OUTPUT:
            return encode_tool_output(base, fields["tool"], fields["result"])
        case MessageType.ACTION_SUGGESTION:
            return encode_action_suggestion(base, fields["action_type"], fields["payload"])
        case MessageType.PROGRESS_UPDATE:
            return encode_progress_update(base, fields["message"])
        case MessageType.MESSAGE_CHUNK:
            return encode_message_chunk(base, fields["text"])
        case MessageType.METADATA:
            return encode_metadata(base, fields["key"], fields["value"])
        case _:
            assert_never(kind)

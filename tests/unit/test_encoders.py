"""Unit tests for the variant encoders."""

from __future__ import annotations

import json

import pytest

from gravity_bridge.envelope.encoders import (
    JsonArray,
    JsonObject,
    JsonScalar,
    classify_json,
    encode,
    encode_action_suggestion,
    encode_image_response,
    encode_json_data,
    encode_message_chunk,
    encode_metadata,
    encode_progress_update,
    encode_text,
    encode_tool_output,
    normalize_items,
)
from gravity_bridge.envelope.model import Envelope, build_base_envelope
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.errors import MalformedPayloadError, ValidationError


@pytest.fixture
def base() -> Envelope:
    return build_base_envelope("chat-1", "conv-1", "user-1", "p", ChatState.RESPONDING)


def test_encode_text_without_voice(base: Envelope) -> None:
    envelope = encode_text(base, "Hello")

    assert envelope.type == MessageType.TEXT
    assert envelope.to_json()["data"] == {"content": "Hello"}


def test_encode_text_with_voice(base: Envelope) -> None:
    envelope = encode_text(base, "Hello", enable_voice=True)

    assert envelope.to_json()["data"]["voiceConfig"] == {"enabled": True, "textField": "text"}


def test_encoders_keep_base_identity(base: Envelope) -> None:
    envelope = encode_progress_update(base, "working")

    assert envelope.id == base.id
    assert envelope.state == ChatState.RESPONDING
    assert envelope.conversation_id == "conv-1"


@pytest.mark.parametrize(
    ("raw", "items"),
    [
        ('[{"a": 1}, {"a": 2}]', [{"a": 1}, {"a": 2}]),
        ('{"a": 1}', [{"a": 1}]),
        ("3", [3]),
        ([1, 2], [1, 2]),
        ({"k": "v"}, [{"k": "v"}]),
    ],
)
def test_encode_json_data_normalizes_items(base: Envelope, raw: object, items: list) -> None:
    envelope = encode_json_data(base, raw, "calls")

    assert envelope.to_json()["data"] == {"_dataType": "calls", "items": items}


def test_encode_json_data_rejects_malformed_string(base: Envelope) -> None:
    with pytest.raises(MalformedPayloadError) as exc_info:
        encode_json_data(base, "{not json")

    assert exc_info.value.raw == "{not json"


def test_classify_and_normalize() -> None:
    assert classify_json({"a": 1}) == JsonObject({"a": 1})
    assert classify_json((1, 2)) == JsonArray([1, 2])
    assert classify_json(None) == JsonScalar(None)
    assert normalize_items(JsonScalar("x")) == ["x"]


def test_encode_image_response_defaults_alt(base: Envelope) -> None:
    envelope = encode_image_response(base, "https://img/1.png")

    assert envelope.to_json()["data"] == {"url": "https://img/1.png", "alt": ""}


def test_encode_tool_output_parses_result(base: Envelope) -> None:
    envelope = encode_tool_output(base, "search", '{"hits": 2}')

    assert envelope.to_json()["data"] == {"tool": "search", "result": {"hits": 2}}


def test_encode_action_suggestion(base: Envelope) -> None:
    envelope = encode_action_suggestion(base, "open_url", {"url": "https://x"})

    assert envelope.to_json()["type"] == "actionSuggestion"
    assert envelope.to_json()["data"] == {"type": "open_url", "payload": {"url": "https://x"}}


def test_encode_message_chunk(base: Envelope) -> None:
    assert encode_message_chunk(base, "par").to_json()["data"] == {"text": "par"}


def test_encode_metadata(base: Envelope) -> None:
    envelope = encode_metadata(base, "lang", "en")

    assert envelope.to_json()["data"] == '{"lang":"en"}'
    assert json.loads(envelope.data) == {"lang": "en"}


def test_encode_metadata_requires_key(base: Envelope) -> None:
    with pytest.raises(ValidationError):
        encode_metadata(base, "", "en")


def test_encode_dispatch(base: Envelope) -> None:
    envelope = encode(base, "imageResponse", url="u", alt="a")

    assert envelope.type == MessageType.IMAGE_RESPONSE
    assert envelope.to_json()["data"] == {"url": "u", "alt": "a"}


def test_encode_dispatch_rejects_unknown_type(base: Envelope) -> None:
    with pytest.raises(ValueError):
        encode(base, "poll", question="?")


def test_encode_tool_output_rejects_malformed_string(base: Envelope) -> None:
    with pytest.raises(MalformedPayloadError):
        encode_tool_output(base, "search", "not json")


def test_encoded_items_do_not_follow_caller_changes(base: Envelope) -> None:
    rows = [{"id": 1}]

    envelope = encode_json_data(base, rows, "rows")
    rows.append({"id": 2})
    rows[0]["id"] = 99

    assert envelope.to_json()["data"]["items"] == [{"id": 1}]

"""Unit tests for the update adapter."""

from __future__ import annotations

import pytest

from gravity_bridge.bus.memory import InMemoryEventBus
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.errors import NodeOperationError
from gravity_bridge.nodes.base import NodeIdentity
from gravity_bridge.nodes.update import UpdateNode, UpdateRequest


@pytest.mark.asyncio
async def test_progress_update(
    bus: InMemoryEventBus, identity: NodeIdentity, target_ids: dict[str, str]
) -> None:
    node = UpdateNode(bus, identity)

    results = await node.execute(
        [UpdateRequest(**target_ids, message="Searching...", state=ChatState.THINKING)]
    )

    envelope = bus.envelopes()[0]
    assert envelope.type == MessageType.PROGRESS_UPDATE
    assert envelope.state == ChatState.THINKING
    assert results[0]["updateType"] == "progressUpdate"
    assert results[0]["message"] == "Searching..."


@pytest.mark.asyncio
async def test_message_chunk_preview_is_truncated(
    bus: InMemoryEventBus, target_ids: dict[str, str]
) -> None:
    node = UpdateNode(bus)
    text = "a" * 40

    results = await node.execute(
        [UpdateRequest(**target_ids, update_type=MessageType.MESSAGE_CHUNK, text=text)]
    )

    assert results[0]["textPreview"] == "a" * 30 + "..."
    assert bus.envelopes()[0].data["text"] == text


@pytest.mark.asyncio
async def test_json_data_defaults_to_calls_label(
    bus: InMemoryEventBus, target_ids: dict[str, str]
) -> None:
    node = UpdateNode(bus)

    results = await node.execute(
        [UpdateRequest(**target_ids, update_type=MessageType.JSON_DATA, json_data="[1, 2, 3]")]
    )

    assert results[0]["dataType"] == "calls"
    assert results[0]["itemCount"] == 3
    assert bus.envelopes()[0].data["_dataType"] == "calls"


@pytest.mark.asyncio
async def test_metadata_update(bus: InMemoryEventBus, target_ids: dict[str, str]) -> None:
    node = UpdateNode(bus)

    results = await node.execute(
        [
            UpdateRequest(
                **target_ids,
                update_type=MessageType.METADATA,
                metadata_key="lang",
                metadata_value="en",
            )
        ]
    )

    assert results[0]["key"] == "lang"
    assert bus.envelopes()[0].to_json()["data"] == '{"lang":"en"}'


@pytest.mark.asyncio
async def test_continue_on_fail(bus: InMemoryEventBus, target_ids: dict[str, str]) -> None:
    node = UpdateNode(bus, continue_on_fail=True)

    results = await node.execute(
        [UpdateRequest(**target_ids, update_type=MessageType.JSON_DATA, json_data="{oops")]
    )

    assert results == [{"success": False, "error": "Invalid JSON data"}]
    assert bus.published == []


@pytest.mark.asyncio
async def test_unsupported_update_type(bus: InMemoryEventBus, target_ids: dict[str, str]) -> None:
    node = UpdateNode(bus)

    with pytest.raises(NodeOperationError, match="Unsupported update type"):
        await node.execute([UpdateRequest(**target_ids, update_type=MessageType.TEXT)])

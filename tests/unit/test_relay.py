"""Unit tests for the query-to-answer relay."""

from __future__ import annotations

import pytest

from gravity_bridge.bus.memory import InMemoryEventBus
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.nodes.chat import ChatNode, ChatRequest
from gravity_bridge.relay import ChatRelay


@pytest.mark.asyncio
async def test_relay_answers_inbound_query(make_chat_provider, bus: InMemoryEventBus) -> None:
    provider = make_chat_provider(["Hi", " there"])
    relay = ChatRelay(bus, ChatNode(provider, bus), template=ChatRequest(model="m1"))

    close = await relay.start()
    await bus.deliver(
        "gravity:QUERY_MESSAGE",
        {
            "payload": {
                "message": "Hello?",
                "conversationId": "conv-1",
                "chatId": "chat-1",
                "userId": "user-1",
            }
        },
    )
    await close()

    envelopes = bus.envelopes("AI_RESULT")
    assert [e.data["text"] for e in envelopes] == ["Hi", " there", " "]
    assert all(e.type == MessageType.MESSAGE_CHUNK for e in envelopes)
    assert envelopes[0].chat_id == "chat-1"
    assert provider.calls[0]["model"] == "m1"
    assert envelopes[-1].state == ChatState.COMPLETE


@pytest.mark.asyncio
async def test_relay_falls_back_to_session_id(make_chat_provider, bus: InMemoryEventBus) -> None:
    relay = ChatRelay(bus, ChatNode(make_chat_provider(["ok"]), bus))

    await relay.handle({"message": "Hello?", "sessionId": "s-1"})

    envelope = bus.envelopes()[0]
    assert envelope.conversation_id == "s-1"
    assert envelope.chat_id == "s-1"
    assert envelope.user_id == "s-1"


@pytest.mark.asyncio
async def test_relay_skips_queries_without_conversation(
    make_chat_provider, bus: InMemoryEventBus
) -> None:
    provider = make_chat_provider(["ok"])
    relay = ChatRelay(bus, ChatNode(provider, bus))

    assert await relay.handle({"message": "Hello?"}) is None
    assert provider.calls == []
    assert bus.published == []


@pytest.mark.asyncio
async def test_relay_ignores_error_records(make_chat_provider, bus: InMemoryEventBus) -> None:
    relay = ChatRelay(bus, ChatNode(make_chat_provider(["ok"]), bus))

    assert await relay.handle({"error": "boom", "originalMessage": {}}) is None


@pytest.mark.asyncio
async def test_relay_returns_outputs_without_keeping_them(
    make_chat_provider, bus: InMemoryEventBus
) -> None:
    relay = ChatRelay(bus, ChatNode(make_chat_provider(["Hi", " there"]), bus))
    attributes = dict(vars(relay))
    query = {"message": "Hello?", "conversationId": "conv-1"}

    answers = [await relay.handle(query) for _ in range(3)]

    assert [a.result[0]["response"] for a in answers] == ["Hi there"] * 3
    assert vars(relay) == attributes

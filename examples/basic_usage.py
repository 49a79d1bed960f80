#!/usr/bin/env python3
"""Programmatic streaming example.

This demonstrates using the bridge components directly:

* load settings from `.env`
* post a "thinking" progress update into a conversation
* stream a Claude (or OpenAI) response into the same conversation

Conversation ids are passed as arguments (not read from `.env`).
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from gravity_bridge.bus.redis_bus import RedisEventBus
from gravity_bridge.config import BridgeSettings
from gravity_bridge.envelope.states import ChatState
from gravity_bridge.llm.factory import LLMFactory
from gravity_bridge.nodes.base import NodeIdentity
from gravity_bridge.nodes.chat import ChatNode, ChatRequest, StreamTarget
from gravity_bridge.nodes.update import UpdateNode, UpdateRequest


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stream a model answer into a conversation.")
    parser.add_argument("--conversation-id", required=True)
    parser.add_argument("--chat-id", required=True)
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--provider", default="claude", choices=["claude", "openai"])
    parser.add_argument("message", help="User message")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, settings: BridgeSettings) -> int:
    bus = RedisEventBus.from_credentials(
        settings.bus.server_url,
        settings.bus.api_key,
        settings.provider_id,
        redis_url=settings.bus.redis_url,
    )
    identity = NodeIdentity.from_settings(settings)
    target = StreamTarget(
        chat_id=args.chat_id,
        conversation_id=args.conversation_id,
        user_id=args.user_id,
        channel=settings.bus.result_channel,
    )

    try:
        await UpdateNode(bus, identity, settings.bus.result_channel).execute(
            [
                UpdateRequest(
                    chat_id=target.chat_id,
                    conversation_id=target.conversation_id,
                    user_id=target.user_id,
                    message="Thinking...",
                    state=ChatState.THINKING,
                )
            ]
        )

        node = ChatNode(LLMFactory.create_chat(args.provider, settings), bus, identity)
        outputs = await node.execute(ChatRequest(message=args.message), publish_to=target)
    finally:
        await bus.close()

    result = outputs.result[0]
    if result.get("error"):
        print(f"Failed: {result['message']}")
        return 1

    print(result["response"])
    print(f"Streamed {result['chunkCount']} chunks")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = BridgeSettings()
    settings.setup_logging()

    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())

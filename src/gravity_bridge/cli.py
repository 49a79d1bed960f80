"""CLI entrypoint for the Gravity bridge.

Every subcommand reads its connection settings from the environment (or a
local `.env`). With `--dry-run` nothing is sent to Redis: envelopes are
published to an in-memory bus and printed instead.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from typing import Any

from pydantic import ValidationError as SettingsValidationError

from gravity_bridge import __version__
from gravity_bridge.bus.memory import InMemoryEventBus
from gravity_bridge.bus.ports import EventBus
from gravity_bridge.bus.redis_bus import RedisEventBus
from gravity_bridge.config import BridgeSettings
from gravity_bridge.credentials import GravityCredentials
from gravity_bridge.envelope.states import ChatState, MessageType
from gravity_bridge.errors import BridgeError
from gravity_bridge.llm.factory import CHAT_PROVIDERS, EMBEDDING_PROVIDERS, LLMFactory
from gravity_bridge.nodes.base import NodeIdentity
from gravity_bridge.nodes.chat import ChatNode, ChatRequest, StreamTarget
from gravity_bridge.nodes.embed import EmbedNode, EmbedRequest
from gravity_bridge.nodes.input import InputNode
from gravity_bridge.nodes.output import OUTPUT_TYPES, OutputNode, OutputRequest
from gravity_bridge.nodes.update import UPDATE_TYPES, UpdateNode, UpdateRequest
from gravity_bridge.relay import ChatRelay

logger = logging.getLogger(__name__)

STATE_CHOICES = [s.value for s in ChatState]


def _add_target_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--chat-id", required=True, help="Chat id")
    parser.add_argument("--conversation-id", required=True, help="Conversation id")
    parser.add_argument("--user-id", required=True, help="User id")
    parser.add_argument(
        "--state",
        default=None,
        choices=STATE_CHOICES,
        help="Override the envelope state (defaults to 'active')",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gravity-bridge",
        description="Publish to and listen on the Gravity event bus",
    )
    parser.add_argument("--version", action="version", version=f"gravity-bridge {__version__}")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory bus and print envelopes instead of publishing them",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    listen = subparsers.add_parser("listen", help="Print inbound queries as JSON lines")
    listen.add_argument(
        "--count",
        type=int,
        default=0,
        help="Stop after this many messages (0 means run until interrupted)",
    )

    send = subparsers.add_parser("send", help="Publish a final output message")
    _add_target_args(send)
    send.add_argument(
        "--type",
        dest="output_type",
        default=MessageType.TEXT.value,
        choices=sorted(t.value for t in OUTPUT_TYPES),
        help="Output message type",
    )
    send.add_argument("--text", default="", help="Text content (text)")
    send.add_argument("--enable-audio", action="store_true", help="Attach voice config (text)")
    send.add_argument(
        "--json",
        dest="json_data",
        default="{}",
        help="JSON payload (jsonData, toolOutput, actionSuggestion)",
    )
    send.add_argument("--data-type", default="data", help="Label for jsonData payloads")
    send.add_argument("--image-url", default="", help="Image URL (imageResponse)")
    send.add_argument("--image-alt", default="", help="Image alt text (imageResponse)")
    send.add_argument("--tool-name", default="", help="Tool name (toolOutput)")
    send.add_argument("--action-type", default="", help="Action type (actionSuggestion)")

    update = subparsers.add_parser("update", help="Publish an in-progress update")
    _add_target_args(update)
    update.add_argument(
        "--type",
        dest="update_type",
        default=MessageType.PROGRESS_UPDATE.value,
        choices=sorted(t.value for t in UPDATE_TYPES),
        help="Update message type",
    )
    update.add_argument("--message", default="", help="Progress message (progressUpdate)")
    update.add_argument("--text", default="", help="Chunk text (messageChunk)")
    update.add_argument("--json", dest="json_data", default="{}", help="JSON payload (jsonData)")
    update.add_argument("--data-type", default="calls", help="Label for jsonData payloads")
    update.add_argument("--key", default="", help="Metadata key (metadata)")
    update.add_argument("--value", default="", help="Metadata value (metadata)")

    chat = subparsers.add_parser("chat", help="Stream one model response")
    chat.add_argument("--provider", default="claude", choices=CHAT_PROVIDERS)
    chat.add_argument("--message", required=True, help="User message (text or JSON message)")
    chat.add_argument("--model", default=None, help="Model id (defaults to the configured one)")
    chat.add_argument("--system-prompt", default=None, help="System prompt")
    chat.add_argument("--temperature", type=float, default=0.7)
    chat.add_argument("--max-tokens", type=int, default=1000)
    chat.add_argument(
        "--publish",
        action="store_true",
        help="Publish every chunk to the conversation given by the id options",
    )
    chat.add_argument("--chat-id", default="")
    chat.add_argument("--conversation-id", default="")
    chat.add_argument("--user-id", default="")

    embed = subparsers.add_parser("embed", help="Compute an embedding for a text")
    embed.add_argument("--provider", default="bedrock", choices=EMBEDDING_PROVIDERS)
    embed.add_argument("--text", required=True, help="Input text")
    embed.add_argument("--model", default=None, help="Embedding model")

    subparsers.add_parser("check-credentials", help="Test the Gravity server URL and API key")

    serve = subparsers.add_parser(
        "serve-chat", help="Answer every inbound query with a streamed model response"
    )
    serve.add_argument("--provider", default="claude", choices=CHAT_PROVIDERS)
    serve.add_argument("--model", default=None)
    serve.add_argument("--system-prompt", default=None)

    return parser


def make_bus(settings: BridgeSettings, dry_run: bool) -> EventBus:
    if dry_run:
        return InMemoryEventBus(provider_id=settings.provider_id)
    return RedisEventBus.from_credentials(
        server_url=settings.bus.server_url,
        api_key=settings.bus.api_key,
        provider_id=settings.provider_id,
        redis_url=settings.bus.redis_url,
    )


def _print_json(value: Any) -> None:
    print(json.dumps(value, ensure_ascii=False, default=str))


def _print_dry_run(bus: EventBus) -> None:
    if isinstance(bus, InMemoryEventBus):
        for published in bus.published:
            _print_json({"channel": published.channel, "event": published.event})


async def _wait_or_fail(bus: EventBus, waiter: Coroutine[Any, Any, Any]) -> None:
    """Wait for `waiter`, or raise as soon as a bus subscription dies."""

    tasks = {asyncio.create_task(waiter), asyncio.create_task(bus.watch())}
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()


async def _listen(bus: EventBus, settings: BridgeSettings, count: int) -> int:
    node = InputNode(bus, settings.bus.query_channel, settings.bus.channel_prefix)
    done = asyncio.Event()
    received = 0

    def emit(message: dict[str, Any]) -> None:
        nonlocal received
        _print_json(message)
        received += 1
        if count and received >= count:
            done.set()

    close = await node.start(emit)
    try:
        await _wait_or_fail(bus, done.wait())
    finally:
        await close()
    return 0


async def _send(bus: EventBus, settings: BridgeSettings, args: argparse.Namespace) -> int:
    node = OutputNode(bus, NodeIdentity.from_settings(settings), settings.bus.result_channel)
    request = OutputRequest(
        chat_id=args.chat_id,
        conversation_id=args.conversation_id,
        user_id=args.user_id,
        output_type=MessageType(args.output_type),
        state=args.state,
        text_content=args.text,
        enable_audio=args.enable_audio,
        json_data=args.json_data,
        json_data_field_name=args.data_type,
        image_url=args.image_url,
        image_alt=args.image_alt,
        tool_name=args.tool_name,
        action_type=args.action_type,
    )
    for result in await node.execute([request]):
        _print_json(result)
    return 0


async def _update(bus: EventBus, settings: BridgeSettings, args: argparse.Namespace) -> int:
    node = UpdateNode(bus, NodeIdentity.from_settings(settings), settings.bus.result_channel)
    request = UpdateRequest(
        chat_id=args.chat_id,
        conversation_id=args.conversation_id,
        user_id=args.user_id,
        update_type=MessageType(args.update_type),
        state=args.state,
        message=args.message,
        text=args.text,
        json_data=args.json_data,
        json_data_field_name=args.data_type,
        metadata_key=args.key,
        metadata_value=args.value,
    )
    for result in await node.execute([request]):
        _print_json(result)
    return 0


async def _chat(bus: EventBus, settings: BridgeSettings, args: argparse.Namespace) -> int:
    provider = LLMFactory.create_chat(args.provider, settings)
    node = ChatNode(provider, bus, NodeIdentity.from_settings(settings))
    target = None
    if args.publish:
        target = StreamTarget(
            chat_id=args.chat_id,
            conversation_id=args.conversation_id,
            user_id=args.user_id,
            channel=settings.bus.result_channel,
        )
    request = ChatRequest(
        message=args.message,
        model=args.model,
        system_prompt=args.system_prompt,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
    )
    outputs = await node.execute(request, publish_to=target)
    result = outputs.result[0]
    _print_json(result)
    return 1 if result.get("error") else 0


async def _embed(settings: BridgeSettings, args: argparse.Namespace) -> int:
    node = EmbedNode(LLMFactory.create_embedding(settings, args.provider))
    for result in await node.execute([EmbedRequest(input_text=args.text, model=args.model)]):
        _print_json(result)
    return 0


async def _serve_chat(bus: EventBus, settings: BridgeSettings, args: argparse.Namespace) -> int:
    provider = LLMFactory.create_chat(args.provider, settings)
    relay = ChatRelay(
        bus,
        ChatNode(provider, bus, NodeIdentity.from_settings(settings)),
        template=ChatRequest(model=args.model, system_prompt=args.system_prompt),
        query_channel=settings.bus.query_channel,
        result_channel=settings.bus.result_channel,
        channel_prefix=settings.bus.channel_prefix,
    )
    close = await relay.start()
    try:
        await _wait_or_fail(bus, asyncio.Event().wait())
    finally:
        await close()
    return 0


async def run(args: argparse.Namespace, settings: BridgeSettings) -> int:
    if args.command == "embed":
        return await _embed(settings, args)

    bus = make_bus(settings, args.dry_run)
    try:
        if args.command == "listen":
            return await _listen(bus, settings, args.count)
        if args.command == "send":
            return await _send(bus, settings, args)
        if args.command == "update":
            return await _update(bus, settings, args)
        if args.command == "chat":
            return await _chat(bus, settings, args)
        if args.command == "serve-chat":
            return await _serve_chat(bus, settings, args)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        if args.dry_run:
            _print_dry_run(bus)
        await bus.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = BridgeSettings()
    except SettingsValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    settings.setup_logging()

    if args.command == "check-credentials":
        try:
            check = GravityCredentials(settings.bus.server_url, settings.bus.api_key).test()
        except ValueError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 2
        print(check.message)
        return 0 if check.ok else 1

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 0
    except BridgeError as e:
        logger.error("Command failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

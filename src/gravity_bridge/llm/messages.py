"""Request shaping shared by the chat adapters."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class McpTool:
    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)

    def to_anthropic(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


def extract_mcp_tools(tool_items: Iterable[Mapping[str, Any]]) -> list[McpTool]:
    """Collect tool definitions from items shaped `{"tool": {name, description, inputSchema}}`.

    Items without a complete definition are skipped.
    """

    tools: list[McpTool] = []
    for item in tool_items:
        tool = item.get("tool")
        if not isinstance(tool, Mapping):
            continue
        if not all(k in tool for k in ("name", "description", "inputSchema")):
            continue
        tools.append(
            McpTool(
                name=str(tool["name"]),
                description=str(tool["description"]),
                input_schema=dict(tool["inputSchema"] or {}),
            )
        )
    return tools


def _parse_message_object(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, dict) and parsed.get("role") and parsed.get("content"):
        return parsed
    return None


def process_claude_message(user_message: Any) -> list[dict[str, Any]]:
    """Build Claude messages (`{"role", "content": [{"text"}]}`) from a user message.

    Accepts a JSON message object, a plain string, or an already-built dict.
    """

    if isinstance(user_message, str):
        message = _parse_message_object(user_message)
        if message is not None:
            return [message]
        return [{"role": "user", "content": [{"text": user_message}]}]
    if isinstance(user_message, Mapping):
        return [dict(user_message)]
    return [{"role": "user", "content": [{"text": "Hello"}]}]


def process_openai_message(user_message: Any) -> list[dict[str, Any]]:
    """Build OpenAI messages (`{"role", "content": str}`) from a user message."""

    if isinstance(user_message, str):
        message = _parse_message_object(user_message)
        if message is not None:
            return [message]
        return [{"role": "user", "content": user_message}]
    if isinstance(user_message, list):
        return [dict(m) for m in user_message]
    if isinstance(user_message, Mapping):
        return [dict(user_message)]
    return [{"role": "user", "content": "Hello"}]


def process_user_message(provider: str, user_message: Any) -> list[dict[str, Any]]:
    if provider == "claude":
        return process_claude_message(user_message)
    return process_openai_message(user_message)

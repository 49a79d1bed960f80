"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from gravity_bridge.bus.memory import InMemoryEventBus
from gravity_bridge.config import BedrockConfig, BridgeSettings, BusConfig, OpenAIConfig
from gravity_bridge.llm.messages import McpTool
from gravity_bridge.llm.provider import ChatProvider, EmbeddingProvider
from gravity_bridge.nodes.base import NodeIdentity


class ScriptedChatProvider(ChatProvider):
    """Chat provider that yields a fixed list of fragments, then optionally fails."""

    def __init__(
        self,
        fragments: Sequence[str],
        name: str = "claude",
        fail_with: Exception | None = None,
        model: str = "test-model:1",
    ) -> None:
        self.fragments = list(fragments)
        self.name = name
        self.fail_with = fail_with
        self.model = model
        self.calls: list[dict[str, Any]] = []

    @property
    def default_model(self) -> str:
        return self.model

    async def stream_chat(
        self,
        messages: Sequence[dict[str, Any]],
        *,
        model: str | None = None,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        tools: Sequence[McpTool] = (),
        tool_choice: str | None = None,
        enable_any_tool: bool = False,
    ) -> AsyncIterator[str]:
        self.calls.append(
            {
                "messages": list(messages),
                "model": model,
                "system_prompt": system_prompt,
                "tools": list(tools),
                "tool_choice": tool_choice,
                "enable_any_tool": enable_any_tool,
            }
        )
        for fragment in self.fragments:
            yield fragment
        if self.fail_with is not None:
            raise self.fail_with


class FixedEmbeddingProvider(EmbeddingProvider):
    def __init__(self, vector: list[float]) -> None:
        self.vector = vector
        self.calls: list[tuple[str, str | None]] = []

    @property
    def default_model(self) -> str:
        return "embed-test"

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        self.calls.append((text, model))
        return list(self.vector)


@pytest.fixture
def settings() -> BridgeSettings:
    """Provide test settings that ignore any local `.env`."""
    return BridgeSettings(
        _env_file=None,
        workflow_id="wf-1",
        node_id="node-1",
        bus=BusConfig(_env_file=None, server_url="http://gravity.local:4100", api_key="secret"),
        openai=OpenAIConfig(_env_file=None, api_key="test-key"),
        bedrock=BedrockConfig(_env_file=None),
    )


@pytest.fixture
def identity() -> NodeIdentity:
    return NodeIdentity(workflow_id="wf-1", node_id="node-1")


@pytest.fixture
def bus() -> InMemoryEventBus:
    return InMemoryEventBus(provider_id="n8n:wf-1:node-1")


@pytest.fixture
def target_ids() -> dict[str, str]:
    return {"chat_id": "chat-1", "conversation_id": "conv-1", "user_id": "user-1"}


@pytest.fixture
def make_chat_provider() -> type[ScriptedChatProvider]:
    return ScriptedChatProvider


@pytest.fixture
def embedding_provider() -> FixedEmbeddingProvider:
    return FixedEmbeddingProvider([0.1, 0.2, 0.3])

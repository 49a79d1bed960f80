"""Abstract base classes for model providers."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any

from gravity_bridge.llm.messages import McpTool


class ChatProvider(ABC):
    """A streaming chat model.

    Implementations yield text fragments in the order the provider sends
    them. Fragments may be empty; the aggregator drops those.
    """

    name: str = "chat"

    @abstractmethod
    def stream_chat(
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
        """Stream a chat completion.

        Args:
            messages: Conversation messages in the provider's shape.
            model: Model id. Defaults to the configured model.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            tools: Tool definitions the model may call.
            tool_choice: Name of a tool the model must use.
            enable_any_tool: Require the model to use some tool.

        Returns:
            Async iterator of text fragments.
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a call does not name one."""


class EmbeddingProvider(ABC):
    """A text embedding model."""

    @abstractmethod
    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        """Return the embedding vector for `text`."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a call does not name one."""

"""OpenAI chat and embedding providers."""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from openai import AsyncOpenAI

from gravity_bridge.config import OpenAIConfig
from gravity_bridge.llm.messages import McpTool
from gravity_bridge.llm.provider import ChatProvider, EmbeddingProvider

logger = logging.getLogger(__name__)


def _client_from_config(config: OpenAIConfig) -> AsyncOpenAI:
    if not config.api_key:
        raise ValueError("OpenAI API key is required")
    return AsyncOpenAI(
        api_key=config.api_key,
        organization=config.organization,
        base_url=config.base_url or None,
    )


class OpenAIChatProvider(ChatProvider):
    """Streaming chat completions from the OpenAI API."""

    name = "openai"

    def __init__(self, config: OpenAIConfig, client: AsyncOpenAI | None = None) -> None:
        """Initialize the provider.

        Args:
            config: OpenAI configuration.
            client: Pre-built client. Built from `config` when omitted.

        Raises:
            ValueError: If no client is given and the API key is missing.
        """
        self.config = config
        self.client = client or _client_from_config(config)

        logger.info(f"OpenAI chat provider initialized with model: {config.model}")

    @property
    def default_model(self) -> str:
        return self.config.model

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
        if tools:
            logger.debug("Tool definitions are not forwarded to OpenAI chat completions")

        request_messages: list[dict[str, Any]] = []
        if system_prompt:
            request_messages.append({"role": "system", "content": system_prompt})
        request_messages.extend(messages)

        temp = temperature if temperature is not None else self.config.temperature

        logger.debug(f"Streaming chat completion with {len(request_messages)} messages")

        stream = await self.client.chat.completions.create(
            model=model or self.config.model,
            messages=request_messages,  # type: ignore[arg-type]
            temperature=temp,
            max_tokens=max_tokens or self.config.max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            yield chunk.choices[0].delta.content or ""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Text embeddings from the OpenAI API."""

    def __init__(self, config: OpenAIConfig, client: AsyncOpenAI | None = None) -> None:
        self.config = config
        self.client = client or _client_from_config(config)

    @property
    def default_model(self) -> str:
        return self.config.embedding_model

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        response = await self.client.embeddings.create(
            model=model or self.config.embedding_model,
            input=text,
        )
        embedding = list(response.data[0].embedding)
        logger.debug(f"Embedded {len(text)} characters into {len(embedding)} dimensions")
        return embedding

"""Claude on AWS Bedrock, through the Anthropic SDK's Bedrock client."""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from anthropic import AsyncAnthropicBedrock

from gravity_bridge.config import BedrockConfig
from gravity_bridge.llm.messages import McpTool
from gravity_bridge.llm.provider import ChatProvider

logger = logging.getLogger(__name__)


def to_anthropic_messages(messages: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert `{"role", "content": [{"text"}]}` messages to Messages API blocks.

    Blocks without a `type` are treated as text blocks. String content is
    passed through.
    """

    converted: list[dict[str, Any]] = []
    for message in messages:
        content = message.get("content")
        if isinstance(content, list):
            blocks = []
            for block in content:
                if isinstance(block, dict) and "type" not in block and "text" in block:
                    blocks.append({"type": "text", "text": block["text"]})
                else:
                    blocks.append(block)
            content = blocks
        converted.append({"role": message.get("role", "user"), "content": content})
    return converted


class ClaudeBedrockProvider(ChatProvider):
    """Streaming Claude responses from Bedrock."""

    name = "claude"

    def __init__(
        self, config: BedrockConfig, client: AsyncAnthropicBedrock | None = None
    ) -> None:
        """Initialize the provider.

        Args:
            config: Bedrock configuration. When the AWS keys are unset the
                default AWS credential chain is used.
            client: Pre-built client. Built from `config` when omitted.
        """
        self.config = config
        self.client = client or AsyncAnthropicBedrock(
            aws_region=config.region,
            aws_access_key=config.aws_access_key_id,
            aws_secret_key=config.aws_secret_access_key,
        )

        logger.info(f"Claude provider initialized with model: {config.model} ({config.region})")

    @property
    def default_model(self) -> str:
        return self.config.model

    def _tool_params(
        self, tools: Sequence[McpTool], tool_choice: str | None, enable_any_tool: bool
    ) -> dict[str, Any]:
        if not tools:
            return {}
        params: dict[str, Any] = {"tools": [tool.to_anthropic() for tool in tools]}
        if tool_choice:
            params["tool_choice"] = {"type": "tool", "name": tool_choice}
        elif enable_any_tool:
            params["tool_choice"] = {"type": "any"}
        return params

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
        request: dict[str, Any] = {
            "model": model or self.config.model,
            "messages": to_anthropic_messages(messages),
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "stream": True,
        }
        system = system_prompt or self.config.system_prompt
        if system:
            request["system"] = system
        request.update(self._tool_params(tools, tool_choice, enable_any_tool))

        logger.debug(f"Streaming Claude response with {len(messages)} messages")

        stream = await self.client.messages.create(**request)
        async for event in stream:
            if event.type != "content_block_delta":
                continue
            if event.delta.type == "text_delta":
                yield event.delta.text

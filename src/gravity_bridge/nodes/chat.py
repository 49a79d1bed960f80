"""Chat adapter: streams a model response through the aggregator.

Outputs, in order:
- stream: one record per chunk, plus the completion chunk
- result: the final response object
- mcp: a text output for MCP clients (Claude only)

Any failure is reported as an error record on every output rather than
raised, except for publish failures and invalid stream targets.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gravity_bridge.bus.ports import AI_RESULT_CHANNEL, Publisher
from gravity_bridge.envelope.encoders import encode_message_chunk, encode_progress_update
from gravity_bridge.envelope.model import build_base_envelope
from gravity_bridge.envelope.states import ChatState
from gravity_bridge.envelope.streaming import StreamChunk, aggregate
from gravity_bridge.errors import PublishError, UpstreamStreamError, ValidationError
from gravity_bridge.llm.messages import extract_mcp_tools, process_user_message
from gravity_bridge.llm.provider import ChatProvider
from gravity_bridge.nodes.base import Item, NodeIdentity, utc_now_iso

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: Any = ""
    model: str | None = None
    system_prompt: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1000
    enable_any_tool: bool = False
    tool_choice: str = ""
    state: ChatState | None = None
    progress_message: str | None = None
    use_mcp_provider: bool = True


@dataclass(frozen=True, slots=True)
class StreamTarget:
    """Conversation that chunks are published to while streaming."""

    chat_id: str
    conversation_id: str
    user_id: str
    channel: str = AI_RESULT_CHANNEL


@dataclass(slots=True)
class ChatOutputs:
    stream: list[Item] = field(default_factory=list)
    result: list[Item] = field(default_factory=list)
    mcp: list[Item] = field(default_factory=list)


def format_error_response(error: BaseException) -> Item:
    return {
        "error": True,
        "message": str(error) or "Unknown error",
        "stack": "".join(traceback.format_exception(error)),
        "timestamp": utc_now_iso(),
    }


class ChatNode:
    def __init__(
        self,
        provider: ChatProvider,
        publisher: Publisher | None = None,
        identity: NodeIdentity | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.provider = provider
        self.publisher = publisher
        self.identity = identity or NodeIdentity()
        self.log = log or logger

    @property
    def source(self) -> str:
        return self.provider.name

    @property
    def has_mcp_output(self) -> bool:
        return self.source == "claude"

    @property
    def display_name(self) -> str:
        return "Gravity Claude" if self.source == "claude" else "Gravity OpenAI"

    def build_messages(self, user_message: Any) -> list[dict[str, Any]]:
        return process_user_message(self.source, user_message)

    def assistant_message(self, text: str) -> dict[str, Any]:
        if self.source == "claude":
            return {"role": "assistant", "content": [{"text": text}]}
        return {"role": "assistant", "content": text}

    def _require_publisher(self) -> Publisher:
        if self.publisher is None:
            raise ValueError("A publisher is required to stream to a conversation")
        return self.publisher

    def _check_target(self, target: StreamTarget) -> None:
        self._require_publisher()
        # Fails with ValidationError before any model call.
        build_base_envelope(
            target.chat_id, target.conversation_id, target.user_id, self.identity.provider_id
        )

    async def _publish_chunk(self, target: StreamTarget, chunk: StreamChunk) -> None:
        publisher = self._require_publisher()
        base = build_base_envelope(
            target.chat_id,
            target.conversation_id,
            target.user_id,
            self.identity.provider_id,
            chunk.state,
        )
        await publisher.publish(target.channel, encode_message_chunk(base, chunk.text))

    async def _publish_failure(self, target: StreamTarget, error: UpstreamStreamError) -> None:
        publisher = self._require_publisher()
        base = build_base_envelope(
            target.chat_id,
            target.conversation_id,
            target.user_id,
            self.identity.provider_id,
            ChatState.ERROR,
        )
        await publisher.publish(target.channel, encode_progress_update(base, str(error)))

    def final_response(
        self,
        model: str,
        full_text: str,
        chunk_count: int,
        messages: list[dict[str, Any]],
        request: ChatRequest,
    ) -> Item:
        return {
            "model": model,
            "response": full_text,
            "chunkCount": chunk_count,
            "messages": messages,
            "updatedMessages": [*messages, self.assistant_message(full_text)],
            "metadata": {
                "timestamp": utc_now_iso(),
                "model": model,
                "temperature": request.temperature,
                "maxTokens": request.max_tokens,
                "totalCharacters": len(full_text),
            },
        }

    def mcp_output(self, model: str, full_text: str, request: ChatRequest) -> Item:
        output: Item = {
            "type": "text",
            "content": full_text,
            "model": model.split(":")[0],
            "metadata": {
                "timestamp": utc_now_iso(),
                "temperature": request.temperature,
                "maxTokens": request.max_tokens,
                "source": self.source,
                "done": True,
            },
        }
        if request.use_mcp_provider:
            output["providerId"] = "mcp"
        return output

    def _error_outputs(self, error: BaseException) -> ChatOutputs:
        response = format_error_response(error)
        return ChatOutputs(
            stream=[response],
            result=[dict(response)],
            mcp=[dict(response)] if self.has_mcp_output else [],
        )

    async def execute(
        self,
        request: ChatRequest,
        tool_items: Iterable[Mapping[str, Any]] = (),
        publish_to: StreamTarget | None = None,
    ) -> ChatOutputs:
        """Run one chat completion.

        Args:
            request: Model parameters and the user message.
            tool_items: Items carrying MCP tool definitions.
            publish_to: When set, every chunk is also published as a
                messageChunk envelope to this conversation, and an
                upstream failure is followed by an error-state
                progressUpdate envelope.

        Raises:
            ValidationError: If `publish_to` has an empty id.
            PublishError: If publishing a chunk fails.
        """
        if publish_to is not None:
            self._check_target(publish_to)

        model = request.model or self.provider.default_model
        try:
            tools = extract_mcp_tools(tool_items)
            messages = self.build_messages(request.message)

            async def on_chunk(chunk: StreamChunk) -> None:
                if publish_to is not None:
                    await self._publish_chunk(publish_to, chunk)

            fragments = self.provider.stream_chat(
                messages,
                model=model,
                system_prompt=request.system_prompt,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                tools=tools,
                tool_choice=request.tool_choice.strip() or None,
                enable_any_tool=request.enable_any_tool,
            )
            result = await aggregate(
                fragments,
                model,
                request.state,
                request.progress_message,
                on_chunk=on_chunk,
                log=self.log,
            )
        except (PublishError, ValidationError):
            raise
        except UpstreamStreamError as e:
            if publish_to is not None:
                await self._publish_failure(publish_to, e)
            return self._error_outputs(e)
        except Exception as e:
            self.log.exception("%s request failed", self.display_name)
            return self._error_outputs(e)

        self.log.info(
            "Streamed %d chunks from %s",
            result.fragment_count,
            model,
            extra={"total_characters": len(result.full_text)},
        )
        outputs = ChatOutputs(
            stream=[chunk.to_json() for chunk in result.chunks],
            result=[
                self.final_response(
                    model, result.full_text, result.fragment_count, messages, request
                )
            ],
        )
        if self.has_mcp_output:
            outputs.mcp.append(self.mcp_output(model, result.full_text, request))
        return outputs

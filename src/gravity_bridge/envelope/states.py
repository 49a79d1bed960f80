from __future__ import annotations

from enum import Enum


class ChatState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    THINKING = "thinking"
    RESPONDING = "responding"
    WAITING = "waiting"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


class MessageType(str, Enum):
    TEXT = "text"
    JSON_DATA = "jsonData"
    IMAGE_RESPONSE = "imageResponse"
    TOOL_OUTPUT = "toolOutput"
    ACTION_SUGGESTION = "actionSuggestion"
    PROGRESS_UPDATE = "progressUpdate"
    MESSAGE_CHUNK = "messageChunk"
    METADATA = "metadata"


class StreamPhase(str, Enum):
    """Where in an adapter invocation an envelope is produced."""

    STREAMING_FRAGMENT = "streaming-fragment"
    STREAMING_FINAL = "streaming-final"
    ONE_SHOT = "one-shot"


DEFAULT_STATES: dict[StreamPhase, ChatState] = {
    StreamPhase.STREAMING_FRAGMENT: ChatState.RESPONDING,
    StreamPhase.STREAMING_FINAL: ChatState.COMPLETE,
    StreamPhase.ONE_SHOT: ChatState.ACTIVE,
}


def default_state_for(phase: StreamPhase) -> ChatState:
    return DEFAULT_STATES[phase]


def resolve_state(override: ChatState | str | None, phase: StreamPhase) -> ChatState:
    """Return the override if one is given, otherwise the phase default.

    An empty string counts as "no override".
    """

    if override:
        return ChatState(override)
    return default_state_for(phase)

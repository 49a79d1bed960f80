"""Error types shared by the envelope core, bus clients and adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gravity_bridge.envelope.streaming import StreamResult


class BridgeError(Exception):
    """Base class for all gravity-bridge errors."""


class ValidationError(BridgeError, ValueError):
    """A required identity field is missing or empty."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class MalformedPayloadError(BridgeError, ValueError):
    """A JSON string payload did not parse."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class UpstreamStreamError(BridgeError):
    """The fragment source failed part way through a stream.

    `partial` holds the chunks produced before the failure. It never contains
    a completion chunk.
    """

    def __init__(self, message: str, partial: StreamResult) -> None:
        super().__init__(message)
        self.partial = partial


class PublishError(BridgeError):
    """The bus rejected or failed to deliver a publish call."""

    def __init__(self, message: str, channel: str | None = None) -> None:
        super().__init__(message)
        self.channel = channel


class NodeOperationError(BridgeError):
    """An adapter failed while processing a single input item."""

    def __init__(
        self,
        message: str,
        item_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.item_index = item_index
        self.details = details


class SubscriptionError(BridgeError):
    """A bus subscription could not be set up, or its listener died."""

    def __init__(self, message: str, channel: str | None = None) -> None:
        super().__init__(message)
        self.channel = channel

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from gravity_bridge.envelope.model import format_provider_id
from gravity_bridge.errors import NodeOperationError, PublishError

if TYPE_CHECKING:
    from gravity_bridge.config import BridgeSettings

Item = dict[str, Any]


@dataclass(frozen=True, slots=True)
class NodeIdentity:
    """Identity of the workflow step an adapter runs as.

    `provider_id` lets consumers tell apart concurrent producers publishing
    into the same conversation.
    """

    workflow_id: str = "unknown"
    node_id: str = "unknown"
    host: str = "n8n"

    @property
    def provider_id(self) -> str:
        return format_provider_id(self.host, self.workflow_id, self.node_id)

    @staticmethod
    def from_settings(settings: BridgeSettings) -> NodeIdentity:
        return NodeIdentity(
            workflow_id=settings.workflow_id, node_id=settings.node_id, host=settings.host
        )


class ErrorHandling(str, Enum):
    THROW = "throw"
    CONTINUE = "continue"


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def item_at(items: Sequence[Item] | None, index: int) -> Item:
    if items is None or index >= len(items):
        return {}
    return dict(items[index])


def handle_item_error(
    error: Exception,
    item_index: int,
    *,
    continue_on_fail: bool,
    item: Item | None = None,
    log: logging.Logger,
) -> Item:
    """Turn a per-item failure into a degraded record, or raise.

    Must be called from inside the `except` block handling `error`.

    Returns:
        `{...item, "success": False, "error": message}` when continuing.

    Raises:
        NodeOperationError: When not continuing. Other exceptions are chained
            as `__cause__`, except `PublishError` which propagates unchanged.
    """

    message = str(error) or "Unknown error"
    if continue_on_fail:
        log.error(
            "Item %d failed: %s", item_index, message, extra={"item_index": item_index}
        )
        return {**(item or {}), "success": False, "error": message}

    if isinstance(error, NodeOperationError):
        if error.item_index is None:
            error.item_index = item_index
        raise error
    if isinstance(error, PublishError):
        raise error
    raise NodeOperationError(message, item_index=item_index) from error

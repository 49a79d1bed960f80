"""Gravity bridge: workflow adapters for the Gravity event bus."""

__version__ = "0.1.0"

from gravity_bridge.config import BridgeSettings
from gravity_bridge.envelope import Envelope, build_base_envelope
from gravity_bridge.errors import (
    BridgeError,
    MalformedPayloadError,
    NodeOperationError,
    PublishError,
    SubscriptionError,
    UpstreamStreamError,
    ValidationError,
)

__all__ = [
    "BridgeError",
    "BridgeSettings",
    "Envelope",
    "MalformedPayloadError",
    "NodeOperationError",
    "PublishError",
    "SubscriptionError",
    "UpstreamStreamError",
    "ValidationError",
    "__version__",
    "build_base_envelope",
]

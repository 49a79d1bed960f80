"""Workflow-step adapters."""

from gravity_bridge.nodes.base import ErrorHandling, NodeIdentity
from gravity_bridge.nodes.chat import ChatNode, ChatOutputs, ChatRequest, StreamTarget
from gravity_bridge.nodes.embed import EmbedNode, EmbedRequest
from gravity_bridge.nodes.input import InboundMessage, InputNode
from gravity_bridge.nodes.output import OutputNode, OutputRequest
from gravity_bridge.nodes.update import UpdateNode, UpdateRequest

__all__ = [
    "ChatNode",
    "ChatOutputs",
    "ChatRequest",
    "EmbedNode",
    "EmbedRequest",
    "ErrorHandling",
    "InboundMessage",
    "InputNode",
    "NodeIdentity",
    "OutputNode",
    "OutputRequest",
    "StreamTarget",
    "UpdateNode",
    "UpdateRequest",
]

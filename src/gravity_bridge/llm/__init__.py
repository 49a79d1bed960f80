"""LLM package initialization."""

from gravity_bridge.llm.factory import LLMFactory
from gravity_bridge.llm.provider import ChatProvider, EmbeddingProvider

__all__ = [
    "ChatProvider",
    "EmbeddingProvider",
    "LLMFactory",
]

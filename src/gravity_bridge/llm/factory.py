"""Factory for creating model providers."""

import logging

from gravity_bridge.config import BridgeSettings
from gravity_bridge.llm.bedrock_embedding import BedrockEmbeddingProvider
from gravity_bridge.llm.claude_provider import ClaudeBedrockProvider
from gravity_bridge.llm.openai_provider import OpenAIChatProvider, OpenAIEmbeddingProvider
from gravity_bridge.llm.provider import ChatProvider, EmbeddingProvider

logger = logging.getLogger(__name__)

CHAT_PROVIDERS = ("claude", "openai")
EMBEDDING_PROVIDERS = ("bedrock", "openai")


class LLMFactory:
    """Factory for creating provider instances."""

    @staticmethod
    def create_chat(provider: str, settings: BridgeSettings) -> ChatProvider:
        """Create a chat provider by name.

        Args:
            provider: "claude" or "openai".
            settings: Bridge settings holding the provider configuration.

        Returns:
            Configured chat provider instance.

        Raises:
            ValueError: If provider type is not supported.
        """
        logger.info(f"Creating chat provider: {provider}")

        if provider == "openai":
            return OpenAIChatProvider(settings.openai)
        elif provider == "claude":
            return ClaudeBedrockProvider(settings.bedrock)
        else:
            raise ValueError(f"Unsupported chat provider: {provider}")

    @staticmethod
    def create_embedding(settings: BridgeSettings, provider: str = "bedrock") -> EmbeddingProvider:
        """Create an embedding provider by name: "bedrock" (Titan) or "openai"."""
        logger.info(f"Creating embedding provider: {provider}")

        if provider == "bedrock":
            return BedrockEmbeddingProvider(settings.bedrock)
        elif provider == "openai":
            return OpenAIEmbeddingProvider(settings.openai)
        else:
            raise ValueError(f"Unsupported embedding provider: {provider}")

"""Configuration for the bridge adapters.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Tests can point at a different env file via `BridgeSettings(_env_file=path)`.
"""

from __future__ import annotations

import logging

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gravity_bridge.envelope.model import format_provider_id
from gravity_bridge.logging import configure_logging


class BusConfig(BaseSettings):
    """Connection and channel settings for the event bus."""

    server_url: str = Field(
        default="http://host.docker.internal",
        description="URL of the Gravity server",
    )
    api_key: str = Field(
        default="",
        description="API key, used both for the GraphQL API and as the Redis password",
    )
    redis_url: str | None = Field(
        default=None,
        description="Explicit Redis URL (derived from server_url when unset)",
    )
    channel_prefix: str = Field(
        default="gravity:",
        description="Prefix added to every subscribed channel",
    )
    query_channel: str = Field(
        default="QUERY_MESSAGE",
        description="Channel inbound user queries arrive on",
    )
    result_channel: str = Field(
        default="AI_RESULT",
        description="Channel outbound envelopes are published to",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAVITY_",
        env_file=".env",
        extra="ignore",
    )


class OpenAIConfig(BaseSettings):
    """Configuration for OpenAI chat and embedding models."""

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GRAVITY_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI API key",
    )
    organization: str | None = Field(
        default=None,
        description="OpenAI organization id",
    )
    base_url: str | None = Field(
        default=None,
        description="Alternative API base URL (OpenAI-compatible servers)",
    )
    model: str = Field(
        default="gpt-4-turbo-preview",
        description="Chat model",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of tokens to generate",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAVITY_OPENAI_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


class BedrockConfig(BaseSettings):
    """Configuration for Claude on AWS Bedrock."""

    region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("GRAVITY_BEDROCK_REGION", "AWS_REGION"),
        description="AWS region",
    )
    aws_access_key_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GRAVITY_BEDROCK_AWS_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
        description="AWS access key id",
    )
    aws_secret_access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GRAVITY_BEDROCK_AWS_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"
        ),
        description="AWS secret access key",
    )
    model: str = Field(
        default="us.anthropic.claude-3-5-sonnet-20241022-v2:0",
        description="Claude model id",
    )
    embedding_model: str = Field(
        default="amazon.titan-embed-text-v2:0",
        description="Titan embedding model id",
    )
    system_prompt: str = Field(
        default="You are Claude, a helpful AI assistant.",
        description="Default system prompt",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of tokens to generate",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAVITY_BEDROCK_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


class BridgeSettings(BaseSettings):
    """Top-level settings for a bridge process."""

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for gravity_bridge",
    )
    host: str = Field(
        default="n8n",
        description="Workflow host name used as the first part of provider ids",
    )
    workflow_id: str = Field(
        default="unknown",
        description="Workflow id used in provider ids",
    )
    node_id: str = Field(
        default="unknown",
        description="Node id used in provider ids",
    )

    bus: BusConfig = Field(default_factory=BusConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    model_config = SettingsConfigDict(
        env_prefix="GRAVITY_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def provider_id(self) -> str:
        return format_provider_id(self.host, self.workflow_id, self.node_id)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""

        configure_logging(self.log_level)
        if self.debug:
            logging.getLogger("gravity_bridge").setLevel(logging.DEBUG)

"""Titan text embeddings on AWS Bedrock."""

import asyncio
import json
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from gravity_bridge.config import BedrockConfig
from gravity_bridge.llm.provider import EmbeddingProvider

logger = logging.getLogger(__name__)

TITAN_EMBEDDING_MODELS = ("amazon.titan-embed-text-v2:0", "amazon.titan-embed-g1-text-02")


class BedrockEmbeddingProvider(EmbeddingProvider):
    """Embeddings from Bedrock's InvokeModel API.

    The boto3 client is synchronous, so calls run in a worker thread.
    """

    def __init__(self, config: BedrockConfig, client: Any | None = None) -> None:
        self.config = config
        self.client = client or boto3.client(
            "bedrock-runtime",
            region_name=config.region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
        )

        logger.info(
            f"Bedrock embedding provider initialized with model: "
            f"{config.embedding_model} ({config.region})"
        )

    @property
    def default_model(self) -> str:
        return self.config.embedding_model

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        """Embed `text` with a Titan model.

        Raises:
            RuntimeError: If Bedrock rejects the call or the response carries
                no embedding array.
        """
        model_id = model or self.config.embedding_model
        try:
            response = await asyncio.to_thread(
                self.client.invoke_model,
                modelId=model_id,
                body=json.dumps({"inputText": text.strip()}),
                contentType="application/json",
                accept="application/json",
            )
        except (BotoCoreError, ClientError) as e:
            raise RuntimeError(f"Bedrock embedding call failed: {e}") from e

        body = json.loads(response["body"].read())
        embedding = body.get("embedding") if isinstance(body, dict) else None
        if not isinstance(embedding, list):
            raise RuntimeError("Failed to extract embedding from response")
        logger.debug(f"Embedded {len(text)} characters into {len(embedding)} dimensions")
        return [float(v) for v in embedding]

"""Embedding adapter: converts item text into an embedding vector."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gravity_bridge.errors import NodeOperationError
from gravity_bridge.llm.provider import EmbeddingProvider
from gravity_bridge.nodes.base import Item, handle_item_error, item_at

logger = logging.getLogger(__name__)


class EmbedRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    input_text: str = ""
    model: str | None = None


class EmbedNode:
    display_name = "Gravity Embed"

    def __init__(
        self,
        provider: EmbeddingProvider,
        continue_on_fail: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.provider = provider
        self.continue_on_fail = continue_on_fail
        self.log = log or logger

    async def execute(
        self, requests: Sequence[EmbedRequest], items: Sequence[Item] | None = None
    ) -> list[Item]:
        results: list[Item] = []
        for index, request in enumerate(requests):
            item = item_at(items, index)
            try:
                text = request.input_text.strip()
                if not text:
                    raise NodeOperationError("Input text is required", item_index=index)

                model = request.model or self.provider.default_model
                embedding = await self.provider.embed(text, model=model)
                if not embedding:
                    raise NodeOperationError(
                        "Failed to extract embedding from response", item_index=index
                    )

                results.append(
                    {
                        **item,
                        "embedding": embedding,
                        "_embeddingModel": model,
                        "_embeddingDimension": len(embedding),
                        "_originalText": request.input_text,
                    }
                )
            except Exception as e:
                results.append(
                    handle_item_error(
                        e, index, continue_on_fail=self.continue_on_fail, log=self.log
                    )
                )
        return results

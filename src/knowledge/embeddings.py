"""Embedding gateway backed by the OpenAI embeddings API.

Turns a question into a dense vector whose dimensionality matches the vector
index collection. Failures are reported as EmbeddingFailure and never retried
here; the retrieval engine decides what to do next.
"""

from __future__ import annotations

from typing import Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from src.knowledge.config import KnowledgeBaseConfig
from src.knowledge.errors import EmbeddingFailure

logger = structlog.get_logger(__name__)


def entry_text(question: str, answer: str) -> str:
    """Text embedded for a knowledge entry: question and answer together."""
    return f"{question} {answer}"


class EmbeddingService:
    """Generates dense embeddings for queries and knowledge entries.

    Args:
        config: Knowledge base configuration with API key and model settings.
        client: Optional pre-built AsyncOpenAI client (tests inject a double).
    """

    def __init__(
        self, config: KnowledgeBaseConfig, client: AsyncOpenAI | None = None
    ) -> None:
        self._model = config.embedding_model
        self._dimensions = config.embedding_dimensions
        self._client = client or AsyncOpenAI(
            api_key=config.openai_api_key or None,
            timeout=config.embedding_timeout,
            max_retries=0,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed a single non-empty text.

        Args:
            text: Input text. Callers reject empty input before calling.

        Returns:
            Dense vector with ``dimensions`` floats.

        Raises:
            EmbeddingFailure: If the API errors or times out, returns a
                deferred handle instead of inline data, or returns no vector.
        """
        try:
            response = await self._client.embeddings.create(
                input=[text],
                model=self._model,
                dimensions=self._dimensions,
            )
        except OpenAIError as exc:
            raise EmbeddingFailure(f"Embedding request failed: {exc}", cause=exc) from exc

        return self._extract_vector(response)

    @staticmethod
    def _extract_vector(response: Any) -> list[float]:
        data = getattr(response, "data", None)
        if data is None:
            # Batch/async job handles carry an id but no inline data
            if getattr(response, "id", None) is not None:
                raise EmbeddingFailure("Deferred embedding response is not supported")
            raise EmbeddingFailure("Embedding API returned no data")

        if not data:
            raise EmbeddingFailure("Embedding API returned empty data")

        vector = getattr(data[0], "embedding", None)
        if not vector:
            raise EmbeddingFailure("Embedding API returned an empty vector")
        return list(vector)

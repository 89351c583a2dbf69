"""Qdrant vector index gateway for knowledge entries.

Wraps the async Qdrant client to provide:
- A single collection of knowledge entry vectors, one point per entry, whose
  point id is the entry id
- Payload carrying the owning tenant_id (keyword index with is_tenant=true)
  alongside the question and answer text
- Unfiltered nearest-neighbour search; tenant filtering is the retrieval
  engine's job and is applied on the returned payloads

Points are written by the entry write path (and the dev seeding script);
the retrieval pipeline only reads them.
"""

from __future__ import annotations

from typing import Any

import structlog
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.models.models import KeywordIndexParams
from qdrant_client.models import (
    Distance,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from src.knowledge.config import KnowledgeBaseConfig
from src.knowledge.errors import SearchFailure
from src.knowledge.models import (
    EntryId,
    KnowledgeEntry,
    VectorCandidate,
    parse_entry_id,
    parse_tenant_id,
)

logger = structlog.get_logger(__name__)

DENSE_VECTOR = "dense"


class QdrantVectorIndex:
    """Nearest-neighbour index over knowledge entry embeddings.

    Args:
        config: Knowledge base configuration.
        client: Optional pre-built AsyncQdrantClient (tests inject one).
    """

    def __init__(
        self, config: KnowledgeBaseConfig, client: AsyncQdrantClient | None = None
    ) -> None:
        self._config = config
        self._collection = config.collection_name

        if client is not None:
            self._client = client
        elif config.qdrant_url:
            self._client = AsyncQdrantClient(
                url=config.qdrant_url,
                api_key=config.qdrant_api_key,
            )
        elif config.qdrant_path == ":memory:":
            self._client = AsyncQdrantClient(location=":memory:")
        else:
            self._client = AsyncQdrantClient(path=config.qdrant_path)

    @property
    def client(self) -> AsyncQdrantClient:
        """Expose the underlying Qdrant client for health checks."""
        return self._client

    async def initialize_collection(self) -> None:
        """Create the knowledge entry collection if it doesn't already exist."""
        if await self._client.collection_exists(self._collection):
            logger.info("vector_index.collection_exists", collection=self._collection)
            return

        await self._client.create_collection(
            collection_name=self._collection,
            vectors_config={
                DENSE_VECTOR: VectorParams(
                    size=self._config.embedding_dimensions,
                    distance=Distance.COSINE,
                ),
            },
        )

        # tenant_id with is_tenant=True for per-tenant HNSW indexes
        await self._client.create_payload_index(
            collection_name=self._collection,
            field_name="tenant_id",
            field_schema=KeywordIndexParams(type="keyword", is_tenant=True),
        )
        logger.info("vector_index.collection_created", collection=self._collection)

    async def search(self, vector: list[float], top_k: int) -> list[VectorCandidate]:
        """Return the top_k nearest points, highest similarity first.

        No tenant filter is applied here. Points whose id is not a valid
        entry id are dropped.

        Raises:
            SearchFailure: If the Qdrant call fails for any reason.
        """
        try:
            response = await self._client.query_points(
                collection_name=self._collection,
                query=vector,
                using=DENSE_VECTOR,
                limit=top_k,
                with_payload=True,
            )
        except Exception as exc:
            raise SearchFailure(f"Vector search failed: {exc}", cause=exc) from exc

        candidates: list[VectorCandidate] = []
        for point in response.points:
            entry_id = parse_entry_id(point.id)
            if entry_id is None:
                logger.warning("vector_index.invalid_point_id", point_id=str(point.id))
                continue
            payload: dict[str, Any] = point.payload or {}
            candidates.append(
                VectorCandidate(
                    entry_id=entry_id,
                    score=point.score,
                    tenant_id=parse_tenant_id(payload.get("tenant_id")),
                    payload=payload,
                )
            )

        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates

    async def upsert_entry(self, entry: KnowledgeEntry, vector: list[float]) -> None:
        """Write (or overwrite) the point for a knowledge entry.

        The point id is the entry id and the payload records the owner.
        """
        await self._client.upsert(
            collection_name=self._collection,
            points=[
                PointStruct(
                    id=str(entry.id),
                    vector={DENSE_VECTOR: vector},
                    payload={
                        "tenant_id": str(entry.tenant_id),
                        "question": entry.question,
                        "answer": entry.answer,
                    },
                )
            ],
        )
        logger.info(
            "vector_index.entry_upserted",
            entry_id=str(entry.id),
            tenant_id=str(entry.tenant_id),
        )

    async def delete_entry(self, entry_id: EntryId) -> None:
        """Remove the point for a deleted knowledge entry."""
        await self._client.delete(
            collection_name=self._collection,
            points_selector=PointIdsList(points=[str(entry_id)]),
        )
        logger.info("vector_index.entry_deleted", entry_id=str(entry_id))

    async def close(self) -> None:
        """Close the Qdrant client connection."""
        await self._client.close()

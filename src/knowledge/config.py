"""Knowledge Base configuration via Pydantic BaseSettings.

All settings load from environment variables with the KNOWLEDGE_ prefix.
For example, KNOWLEDGE_QDRANT_URL sets qdrant_url.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KnowledgeBaseConfig(BaseSettings):
    """Configuration for the vector index, embeddings, and retrieval bounds.

    Attributes:
        qdrant_path: Local filesystem path for Qdrant storage (dev mode).
            ":memory:" keeps the index in process memory.
        qdrant_url: Remote Qdrant server URL (production mode). If set, takes
            precedence over qdrant_path.
        qdrant_api_key: API key for remote Qdrant authentication.
        openai_api_key: OpenAI API key for query embeddings.
        embedding_model: OpenAI embedding model name.
        embedding_dimensions: Dimensionality of the vectors. Must match the
            collection the entries were indexed into.
        embedding_timeout: Seconds before an embedding call is abandoned.
        collection_name: Qdrant collection holding knowledge entry vectors.
        search_overfetch: Candidates requested from the index before the
            tenant filter discards other tenants' points.
        max_context_entries: Upper bound on entries handed to the prompt,
            for both the semantic and the recency path.
    """

    model_config = SettingsConfigDict(
        env_prefix="KNOWLEDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Qdrant connection
    qdrant_path: str = "./qdrant_data"
    qdrant_url: str | None = None
    qdrant_api_key: str | None = None

    # Embedding
    openai_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 768
    embedding_timeout: float = 10.0

    # Collection
    collection_name: str = "knowledge_entries"

    # Retrieval bounds
    search_overfetch: int = Field(default=10, ge=1)
    max_context_entries: int = Field(default=5, ge=1)

"""Knowledge module for tenant-scoped retrieval and chatbot answers.

Provides the embedding and Qdrant vector gateways, the retrieval engine with
recency fallback, prompt composition, and the answer service that ties them
to a generation model.
"""

from src.knowledge.answer import AnswerService
from src.knowledge.config import KnowledgeBaseConfig
from src.knowledge.embeddings import EmbeddingService
from src.knowledge.errors import (
    EmbeddingFailure,
    InvalidQueryError,
    KnowledgeError,
    SearchFailure,
    StoreFailure,
    TenantNotFoundError,
)
from src.knowledge.models import (
    ChatAnswer,
    ChatQuery,
    EntryId,
    KnowledgeEntry,
    RetrievalResult,
    RetrievalSource,
    TenantId,
    TenantProfile,
    VectorCandidate,
)
from src.knowledge.prompts import compose_messages
from src.knowledge.retrieval import RetrievalEngine
from src.knowledge.vector_index import QdrantVectorIndex

__all__ = [
    "AnswerService",
    "ChatAnswer",
    "ChatQuery",
    "EmbeddingFailure",
    "EmbeddingService",
    "EntryId",
    "InvalidQueryError",
    "KnowledgeBaseConfig",
    "KnowledgeEntry",
    "KnowledgeError",
    "QdrantVectorIndex",
    "RetrievalEngine",
    "RetrievalResult",
    "RetrievalSource",
    "SearchFailure",
    "StoreFailure",
    "TenantId",
    "TenantNotFoundError",
    "TenantProfile",
    "VectorCandidate",
    "compose_messages",
]

"""Exception hierarchy for the retrieval pipeline.

Client-facing errors (bad input, unknown tenant) propagate to the caller.
Gateway errors are raised by the embedding, vector and store gateways and
are absorbed by the retrieval engine into its fallback path.
"""

from __future__ import annotations


class KnowledgeError(Exception):
    """Base class for all knowledge pipeline errors."""


class InvalidQueryError(KnowledgeError, ValueError):
    """Raised when a query is rejected before any I/O (empty question, bad tenant identifiers)."""


class TenantNotFoundError(KnowledgeError, LookupError):
    """Raised when neither the tenant id nor the handle resolves to a tenant."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Chatbot owner not found: {identifier}")


class GatewayError(KnowledgeError):
    """An external collaborator failed. Carries the pipeline stage name."""

    stage = "gateway"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class EmbeddingFailure(GatewayError):
    """The embedding model returned no inline vector or the call failed."""

    stage = "embedding"


class SearchFailure(GatewayError):
    """The vector index query failed."""

    stage = "vector_search"


class StoreFailure(GatewayError):
    """A knowledge store read failed."""

    stage = "store"

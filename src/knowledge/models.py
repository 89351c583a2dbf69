"""Pydantic models for the knowledge retrieval domain.

Defines the identifiers shared by every gateway, the read models for tenants
and knowledge entries, and the ephemeral query/result types that flow through
the retrieval pipeline. These models are the contract between the store,
the vector index, the retrieval engine and the HTTP layer.

EntryId is both the relational primary key of a knowledge entry and the point
id of its vector in the index. Gateways exchange EntryId values only, so the
join between search candidates and stored rows is always made on the same
typed identifier.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, NewType

from pydantic import BaseModel, Field

TenantId = NewType("TenantId", uuid.UUID)
EntryId = NewType("EntryId", uuid.UUID)


def parse_entry_id(value: Any) -> EntryId | None:
    """Coerce a vector point id or payload value into an EntryId.

    Returns None for anything that is not a UUID (integer ids, malformed
    strings, missing values).
    """
    if isinstance(value, uuid.UUID):
        return EntryId(value)
    if isinstance(value, str):
        try:
            return EntryId(uuid.UUID(value))
        except ValueError:
            return None
    return None


def parse_tenant_id(value: Any) -> TenantId | None:
    """Coerce a payload value into a TenantId, or None if it is not a UUID."""
    if isinstance(value, uuid.UUID):
        return TenantId(value)
    if isinstance(value, str):
        try:
            return TenantId(uuid.UUID(value))
        except ValueError:
            return None
    return None


# ── Tenants & Entries ───────────────────────────────────────────────────────


class TenantProfile(BaseModel):
    """Canonical identity and display profile of a chatbot owner.

    Attributes:
        tenant_id: Immutable tenant identifier.
        handle: Unique, URL-safe handle (the /<username> in chatbot links).
        display_name: Name used to personalize the prompt.
        bio: Optional free-text bio, injected into the system prompt.
    """

    tenant_id: TenantId
    handle: str
    display_name: str = ""
    bio: str | None = None


class KnowledgeEntry(BaseModel):
    """One question/answer pair owned by exactly one tenant."""

    id: EntryId
    tenant_id: TenantId
    question: str
    answer: str
    created_at: datetime
    modified_at: datetime | None = None


class VectorCandidate(BaseModel):
    """A nearest-neighbour hit returned by the vector index.

    Attributes:
        entry_id: Point id, identical to the knowledge entry id.
        score: Similarity score, higher is closer.
        tenant_id: Owner recorded in the point payload. None when the payload
            is missing or malformed; such candidates never pass the tenant filter.
        payload: Raw point payload, kept for diagnostics.
    """

    entry_id: EntryId
    score: float
    tenant_id: TenantId | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


# ── Query & Result ──────────────────────────────────────────────────────────


class ChatQuery(BaseModel):
    """A single chatbot question addressed to one tenant."""

    question: str
    tenant_id: TenantId | None = None
    tenant_handle: str | None = None
    debug: bool = False


class RetrievalSource(str, Enum):
    """Which path produced the retrieved entries."""

    semantic = "semantic"
    recency = "recency"


class RetrievalDiagnostics(BaseModel):
    """Counts and ids observed at each retrieval stage.

    Attributes:
        semantic_match_count: Raw candidates returned by the vector index.
        post_filter_count: Candidates left after the tenant filter and bound.
        matching_ids: Entry ids that survived the tenant filter, in score order.
        entries_retrieved: Entries finally returned by the store.
        embedding_failed: The query could not be embedded.
        search_failed: The vector index call failed.
        store_failed: A store read failed.
        fallback_reason: Why the recency path was taken, None on the semantic path.
    """

    semantic_match_count: int = 0
    post_filter_count: int = 0
    matching_ids: list[EntryId] = Field(default_factory=list)
    entries_retrieved: int = 0
    embedding_failed: bool = False
    search_failed: bool = False
    store_failed: bool = False
    fallback_reason: str | None = None


class RetrievalResult(BaseModel):
    """Output of the retrieval engine for one query."""

    tenant: TenantProfile
    entries: list[KnowledgeEntry] = Field(default_factory=list)
    source: RetrievalSource
    diagnostics: RetrievalDiagnostics = Field(default_factory=RetrievalDiagnostics)

    @property
    def context_used(self) -> bool:
        return bool(self.entries)


class AnswerDebug(BaseModel):
    """Diagnostic block returned to the chatbot owner."""

    semantic_match_count: int
    post_filter_count: int
    matching_ids: list[str]
    entries_retrieved: int
    tenant_id: str
    tenant_handle: str
    source: RetrievalSource
    fallback_reason: str | None = None


class ChatAnswer(BaseModel):
    """Final answer produced for a chatbot query."""

    answer: str
    context_used: bool
    entries_used: int
    source: RetrievalSource
    debug: AnswerDebug | None = None

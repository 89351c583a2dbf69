"""Tenant-scoped retrieval engine with recency fallback.

Implements retrieval for one chatbot query as a strictly sequential flow:
  validate -> embed -> search -> tenant filter + bound -> resolve -> assemble

Semantic retrieval embeds the question, over-fetches nearest neighbours from a
vector index shared by all tenants, keeps only the requesting tenant's points
and loads the surviving ids from the knowledge store (which re-applies the
tenant scope). Whenever that path yields no usable entries (embedding or search
failure, empty index, only foreign matches, stale points) the engine
substitutes the tenant's most recent entries instead. The two paths are never
mixed within one result.

Gateway failures are absorbed here and recorded in the diagnostics; only client
errors (empty question, bad or unknown tenant) propagate to the caller.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Protocol

import structlog

from src.knowledge.errors import (
    EmbeddingFailure,
    InvalidQueryError,
    SearchFailure,
    StoreFailure,
)
from src.knowledge.models import (
    ChatQuery,
    EntryId,
    KnowledgeEntry,
    RetrievalDiagnostics,
    RetrievalResult,
    RetrievalSource,
    TenantId,
    TenantProfile,
    VectorCandidate,
)

logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_OVERFETCH = 10
DEFAULT_MAX_CONTEXT_ENTRIES = 5


# ── Gateway Interfaces ──────────────────────────────────────────────────────


class TenantDirectory(Protocol):
    async def resolve(
        self, handle: str | None = None, tenant_id: TenantId | uuid.UUID | None = None
    ) -> TenantProfile: ...


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class VectorSearcher(Protocol):
    async def search(self, vector: list[float], top_k: int) -> list[VectorCandidate]: ...


class EntryStore(Protocol):
    async def get_by_ids(
        self, ids: Iterable[EntryId], tenant_id: TenantId
    ) -> list[KnowledgeEntry]: ...

    async def get_recent(self, tenant_id: TenantId, limit: int) -> list[KnowledgeEntry]: ...


# ── Pure Helpers ────────────────────────────────────────────────────────────


def filter_candidates(
    candidates: list[VectorCandidate], tenant_id: TenantId, limit: int
) -> list[EntryId]:
    """Keep the tenant's candidates in score order, bounded to limit.

    Candidates without a payload tenant id are discarded. Duplicate ids keep
    their first (highest scoring) position.
    """
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    matching: list[EntryId] = []
    for candidate in ranked:
        if candidate.tenant_id != tenant_id:
            logger.debug(
                "retrieval.candidate_filtered",
                entry_id=str(candidate.entry_id),
                candidate_tenant=str(candidate.tenant_id) if candidate.tenant_id else None,
            )
            continue
        if candidate.entry_id in matching:
            continue
        matching.append(candidate.entry_id)
        if len(matching) >= limit:
            break
    return matching


def order_by_ids(entries: list[KnowledgeEntry], ids: list[EntryId]) -> list[KnowledgeEntry]:
    """Reorder store results to follow the given id ranking."""
    rank = {entry_id: position for position, entry_id in enumerate(ids)}
    present = [e for e in entries if e.id in rank]
    return sorted(present, key=lambda e: rank[e.id])


def owned_by(entries: list[KnowledgeEntry], tenant_id: TenantId) -> list[KnowledgeEntry]:
    """Drop any entry not owned by tenant_id."""
    owned = [e for e in entries if e.tenant_id == tenant_id]
    if len(owned) != len(entries):
        logger.warning(
            "retrieval.foreign_entries_dropped",
            tenant_id=str(tenant_id),
            dropped=len(entries) - len(owned),
        )
    return owned


# ── Engine ──────────────────────────────────────────────────────────────────


class RetrievalEngine:
    """Finds the knowledge entries used as context for one chatbot answer.

    Args:
        tenants: Resolves tenant handles / ids to profiles.
        embedder: Embedding gateway for the question text.
        index: Vector search gateway over all tenants' entries.
        store: Knowledge store gateway for id lookups and recency reads.
        search_overfetch: Candidates requested from the index.
        max_context_entries: Upper bound on returned entries.
    """

    def __init__(
        self,
        tenants: TenantDirectory,
        embedder: Embedder,
        index: VectorSearcher,
        store: EntryStore,
        search_overfetch: int = DEFAULT_SEARCH_OVERFETCH,
        max_context_entries: int = DEFAULT_MAX_CONTEXT_ENTRIES,
    ) -> None:
        if search_overfetch < 1 or max_context_entries < 1:
            raise ValueError("search_overfetch and max_context_entries must be positive")
        self._tenants = tenants
        self._embedder = embedder
        self._index = index
        self._store = store
        self._search_overfetch = search_overfetch
        self._max_context_entries = max_context_entries

    async def retrieve(self, query: ChatQuery) -> RetrievalResult:
        """Run retrieval for a query.

        Args:
            query: Question plus exactly one tenant identifier.

        Returns:
            RetrievalResult with entries, the path that produced them, and
            per-stage diagnostics.

        Raises:
            InvalidQueryError: Empty question or bad tenant identifiers.
            TenantNotFoundError: The tenant identifier resolves to nothing.
        """
        question = query.question.strip()
        if not question:
            raise InvalidQueryError("Question is required")

        tenant = await self._tenants.resolve(
            handle=query.tenant_handle, tenant_id=query.tenant_id
        )
        diagnostics = RetrievalDiagnostics()

        matching_ids = await self._semantic_candidates(question, tenant, diagnostics)

        entries: list[KnowledgeEntry] = []
        source = RetrievalSource.recency
        if matching_ids:
            entries = await self._resolve_ids(matching_ids, tenant, diagnostics)
            if entries:
                source = RetrievalSource.semantic
            elif diagnostics.fallback_reason is None:
                diagnostics.fallback_reason = "stale_index"
        elif diagnostics.fallback_reason is None:
            diagnostics.fallback_reason = "no_tenant_matches"

        if source is RetrievalSource.recency:
            entries = await self._recent(tenant, diagnostics)

        diagnostics.entries_retrieved = len(entries)
        logger.info(
            "retrieval.completed",
            tenant_id=str(tenant.tenant_id),
            source=source.value,
            semantic_match_count=diagnostics.semantic_match_count,
            post_filter_count=diagnostics.post_filter_count,
            entries_retrieved=diagnostics.entries_retrieved,
            fallback_reason=diagnostics.fallback_reason,
        )
        return RetrievalResult(
            tenant=tenant,
            entries=entries,
            source=source,
            diagnostics=diagnostics,
        )

    async def _semantic_candidates(
        self, question: str, tenant: TenantProfile, diagnostics: RetrievalDiagnostics
    ) -> list[EntryId]:
        """Embed, search and tenant-filter. Returns [] on any gateway failure."""
        try:
            vector = await self._embedder.embed(question)
        except EmbeddingFailure:
            logger.warning(
                "retrieval.embedding_failed",
                tenant_id=str(tenant.tenant_id),
                exc_info=True,
            )
            diagnostics.embedding_failed = True
            diagnostics.fallback_reason = "embedding_failed"
            return []

        try:
            candidates = await self._index.search(vector, self._search_overfetch)
        except SearchFailure:
            logger.warning(
                "retrieval.search_failed",
                tenant_id=str(tenant.tenant_id),
                exc_info=True,
            )
            diagnostics.search_failed = True
            diagnostics.fallback_reason = "search_failed"
            candidates = []

        diagnostics.semantic_match_count = len(candidates)
        matching_ids = filter_candidates(
            candidates, tenant.tenant_id, self._max_context_entries
        )
        diagnostics.post_filter_count = len(matching_ids)
        diagnostics.matching_ids = matching_ids
        return matching_ids

    async def _resolve_ids(
        self,
        matching_ids: list[EntryId],
        tenant: TenantProfile,
        diagnostics: RetrievalDiagnostics,
    ) -> list[KnowledgeEntry]:
        try:
            entries = await self._store.get_by_ids(matching_ids, tenant.tenant_id)
        except StoreFailure:
            logger.warning(
                "retrieval.store_lookup_failed",
                tenant_id=str(tenant.tenant_id),
                exc_info=True,
            )
            diagnostics.store_failed = True
            diagnostics.fallback_reason = "store_lookup_failed"
            return []
        return order_by_ids(owned_by(entries, tenant.tenant_id), matching_ids)

    async def _recent(
        self, tenant: TenantProfile, diagnostics: RetrievalDiagnostics
    ) -> list[KnowledgeEntry]:
        try:
            entries = await self._store.get_recent(
                tenant.tenant_id, self._max_context_entries
            )
        except StoreFailure:
            logger.warning(
                "retrieval.recent_lookup_failed",
                tenant_id=str(tenant.tenant_id),
                exc_info=True,
            )
            diagnostics.store_failed = True
            return []
        owned = owned_by(entries, tenant.tenant_id)
        return owned[: self._max_context_entries]

"""Knowledge store gateway over the relational knowledge_entries table.

Two read paths serve the retrieval engine:
- get_by_ids(): join vector search hits back to stored rows
- get_recent(): newest entries for the recency fallback

Both are scoped to the owning tenant in SQL, independently of any filtering
done upstream on vector payloads.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.models.knowledge import KnowledgeEntryModel
from src.knowledge.errors import StoreFailure
from src.knowledge.models import EntryId, KnowledgeEntry, TenantId

logger = structlog.get_logger(__name__)


def _model_to_entry(model: KnowledgeEntryModel) -> KnowledgeEntry:
    return KnowledgeEntry(
        id=EntryId(model.id),
        tenant_id=TenantId(model.tenant_id),
        question=model.question,
        answer=model.answer,
        created_at=model.created_at,
        modified_at=model.modified_at,
    )


class KnowledgeStore:
    """Tenant-scoped reads of knowledge entries.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def get_by_ids(
        self, ids: Iterable[EntryId], tenant_id: TenantId
    ) -> list[KnowledgeEntry]:
        """Load the given entries, keeping only those owned by tenant_id.

        Order is unspecified; callers reorder by their own ranking.

        Raises:
            StoreFailure: If the database query fails.
        """
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return []

        stmt = select(KnowledgeEntryModel).where(
            KnowledgeEntryModel.id.in_(id_list),
            KnowledgeEntryModel.tenant_id == tenant_id,
        )
        return await self._fetch(stmt, operation="get_by_ids")

    async def get_recent(self, tenant_id: TenantId, limit: int) -> list[KnowledgeEntry]:
        """Return the tenant's newest entries, newest first, at most limit.

        Raises:
            StoreFailure: If the database query fails.
        """
        stmt = (
            select(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.tenant_id == tenant_id)
            .order_by(
                KnowledgeEntryModel.created_at.desc(),
                KnowledgeEntryModel.id.desc(),
            )
            .limit(limit)
        )
        return await self._fetch(stmt, operation="get_recent")

    async def _fetch(self, stmt, operation: str) -> list[KnowledgeEntry]:
        entries: list[KnowledgeEntry] = []
        try:
            async for session in self._session_factory():
                result = await session.execute(stmt)
                entries = [_model_to_entry(m) for m in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Knowledge store {operation} failed: {exc}", cause=exc) from exc

        logger.debug("knowledge_store.fetched", operation=operation, count=len(entries))
        return entries

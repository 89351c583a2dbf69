"""Tenant resolver: handle or id to canonical tenant profile.

Looks tenants up in the relational store and, when a Redis client is
available, caches resolved profiles by tenant id for a short TTL. The
database remains authoritative: cache failures are logged and the lookup
falls through.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncGenerator, Callable

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.models.tenant import Tenant
from src.knowledge.errors import InvalidQueryError, TenantNotFoundError
from src.knowledge.models import TenantId, TenantProfile

logger = structlog.get_logger(__name__)


def display_name_for(first_name: str | None, last_name: str | None, handle: str) -> str:
    """Join first and last name, falling back to the handle when both are blank."""
    name = " ".join(part for part in (first_name, last_name) if part and part.strip())
    return name.strip() or handle


def tenant_to_profile(tenant: Tenant) -> TenantProfile:
    """Convert a Tenant row into the read model used by the pipeline."""
    return TenantProfile(
        tenant_id=TenantId(tenant.id),
        handle=tenant.handle,
        display_name=display_name_for(tenant.first_name, tenant.last_name, tenant.handle),
        bio=tenant.bio or None,
    )


class TenantResolver:
    """Resolves chatbot owners by handle or id.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
        redis_client: Optional Redis client for profile caching.
        cache_ttl: Cache lifetime in seconds.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncGenerator[AsyncSession, None]],
        redis_client: aioredis.Redis | None = None,
        cache_ttl: int = 300,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis_client
        self._cache_ttl = cache_ttl

    async def resolve(
        self,
        handle: str | None = None,
        tenant_id: TenantId | uuid.UUID | None = None,
    ) -> TenantProfile:
        """Resolve exactly one of handle / tenant_id to a TenantProfile.

        Only id lookups are served from the cache. Handles can be renamed and
        reclaimed by another tenant, so a handle always goes to the database.

        Raises:
            InvalidQueryError: If neither or both identifiers are supplied.
            TenantNotFoundError: If the identifier matches no tenant.
        """
        handle = (handle or "").strip() or None
        if (handle is None) == (tenant_id is None):
            raise InvalidQueryError("Exactly one of tenant id or username is required")

        if tenant_id is not None:
            cached = await self._cache_get(str(tenant_id))
            if cached is not None:
                return cached
            stmt = select(Tenant).where(Tenant.id == tenant_id)
            identifier = str(tenant_id)
        else:
            stmt = select(Tenant).where(Tenant.handle == handle)
            identifier = handle

        tenant: Tenant | None = None
        async for session in self._session_factory():
            result = await session.execute(stmt)
            tenant = result.scalar_one_or_none()

        if tenant is None:
            logger.info(
                "tenant_resolver.not_found",
                kind="id" if tenant_id is not None else "handle",
                value=identifier,
            )
            raise TenantNotFoundError(identifier)

        profile = tenant_to_profile(tenant)
        await self._cache_set(profile)
        return profile

    # ── Cache ────────────────────────────────────────────────────────────

    @staticmethod
    def _cache_key(tenant_id: str) -> str:
        return f"tenant:profile:id:{tenant_id}"

    async def _cache_get(self, tenant_id: str) -> TenantProfile | None:
        if self._redis is None:
            return None
        key = self._cache_key(tenant_id)
        try:
            raw = await self._redis.get(key)
            if not raw:
                return None
            return TenantProfile.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            # Corrupt or outdated entry: drop it and read through
            logger.warning("tenant_resolver.cache_get_failed", key=key, exc_info=True)
            await self._cache_delete(key)
            return None
        except Exception:
            logger.warning("tenant_resolver.cache_get_failed", key=key, exc_info=True)
            return None

    async def _cache_set(self, profile: TenantProfile) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(
                self._cache_key(str(profile.tenant_id)),
                profile.model_dump_json(),
                ex=self._cache_ttl,
            )
        except Exception:
            logger.warning("tenant_resolver.cache_set_failed", exc_info=True)

    async def _cache_delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except Exception:
            logger.warning("tenant_resolver.cache_delete_failed", key=key, exc_info=True)

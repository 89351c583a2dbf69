"""Tests for identifier parsing and result models."""

from __future__ import annotations

import uuid

from src.knowledge.errors import EmbeddingFailure, GatewayError, SearchFailure, StoreFailure
from src.knowledge.models import (
    RetrievalResult,
    RetrievalSource,
    TenantId,
    TenantProfile,
    parse_entry_id,
    parse_tenant_id,
)


def test_parse_entry_id_accepts_uuid_and_string():
    value = uuid.uuid4()

    assert parse_entry_id(value) == value
    assert parse_entry_id(str(value)) == value


def test_parse_ids_reject_non_uuids():
    assert parse_entry_id(42) is None
    assert parse_entry_id("abc") is None
    assert parse_tenant_id(None) is None
    assert parse_tenant_id("") is None


def test_context_used_follows_entries():
    result = RetrievalResult(
        tenant=TenantProfile(tenant_id=TenantId(uuid.uuid4()), handle="bob"),
        source=RetrievalSource.recency,
    )

    assert result.context_used is False


def test_gateway_errors_carry_stage_and_cause():
    cause = TimeoutError("slow")
    error = EmbeddingFailure("timed out", cause=cause)

    assert isinstance(error, GatewayError)
    assert error.cause is cause
    assert (EmbeddingFailure.stage, SearchFailure.stage, StoreFailure.stage) == (
        "embedding",
        "vector_search",
        "store",
    )

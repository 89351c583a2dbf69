"""Integration tests for the chatbot API endpoints.

Uses a fake AnswerService on app.state and httpx AsyncClient against a
minimal app with the chatbot router. Owner identification uses real JWTs
from create_access_token.
"""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.app.api.v1.chatbot import router
from src.app.core.security import create_access_token
from src.knowledge.errors import InvalidQueryError, TenantNotFoundError
from src.knowledge.models import AnswerDebug, ChatAnswer, ChatQuery, RetrievalSource


TENANT_ID = str(uuid.uuid4())


# ── Test Double ─────────────────────────────────────────────────────────────


class FakeAnswerService:
    """Records queries and returns a canned answer or raises a canned error."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.queries: list[tuple[ChatQuery, bool]] = []

    async def answer(self, query: ChatQuery, include_debug: bool = False) -> ChatAnswer:
        self.queries.append((query, include_debug))
        if self.error is not None:
            raise self.error
        if not query.question.strip():
            raise InvalidQueryError("Question is required")
        debug = None
        if include_debug:
            debug = AnswerDebug(
                semantic_match_count=10,
                post_filter_count=1,
                matching_ids=[str(uuid.uuid4())],
                entries_retrieved=1,
                tenant_id=TENANT_ID,
                tenant_handle="alice",
                source=RetrievalSource.semantic,
            )
        return ChatAnswer(
            answer="Click 'Forgot password' on the login page.",
            context_used=True,
            entries_used=1,
            source=RetrievalSource.semantic,
            debug=debug,
        )


def _make_app(service) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.answer_service = service
    return app


@pytest_asyncio.fixture
async def client_and_service():
    service = FakeAnswerService()
    transport = ASGITransport(app=_make_app(service))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, service


# ── Query Tests ─────────────────────────────────────────────────────────────


async def test_get_by_username(client_and_service):
    client, service = client_and_service

    response = await client.get(
        "/api/v1/chatbot", params={"text": "how do I reset my password", "username": "alice"}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data == {
        "answer": "Click 'Forgot password' on the login page.",
        "contextUsed": True,
        "entriesUsed": 1,
    }
    query, include_debug = service.queries[0]
    assert query.tenant_handle == "alice"
    assert query.tenant_id is None
    assert include_debug is False


async def test_get_accepts_question_alias_and_tenant_id(client_and_service):
    client, service = client_and_service

    response = await client.get(
        "/api/v1/chatbot", params={"question": "hours?", "tenant_id": TENANT_ID}
    )

    assert response.status_code == 200
    query, _ = service.queries[0]
    assert query.question == "hours?"
    assert str(query.tenant_id) == TENANT_ID


async def test_post_with_camel_case_body(client_and_service):
    client, service = client_and_service

    response = await client.post(
        "/api/v1/chatbot",
        json={"question": "hours?", "tenantHandle": "alice"},
    )

    assert response.status_code == 200
    assert response.json()["entriesUsed"] == 1
    assert service.queries[0][0].tenant_handle == "alice"


async def test_get_accepts_user_id_alias(client_and_service):
    client, service = client_and_service

    response = await client.get("/api/v1/chatbot", params={"text": "hours?", "userId": TENANT_ID})

    assert response.status_code == 200
    assert str(service.queries[0][0].tenant_id) == TENANT_ID


@pytest.mark.parametrize("tenant_id", ["42", "not-a-uuid"])
async def test_malformed_tenant_id_in_query_returns_400(client_and_service, tenant_id):
    client, service = client_and_service

    response = await client.get("/api/v1/chatbot", params={"text": "hi", "tenant_id": tenant_id})

    assert response.status_code == 400
    assert response.json()["detail"] == f"Invalid tenant id: {tenant_id}"
    assert service.queries == []


async def test_malformed_tenant_id_in_body_returns_400(client_and_service):
    client, service = client_and_service

    response = await client.post("/api/v1/chatbot", json={"question": "hi", "tenantId": "42"})

    assert response.status_code == 400
    assert service.queries == []


# ── Error Mapping Tests ─────────────────────────────────────────────────────


async def test_empty_question_returns_400(client_and_service):
    client, _ = client_and_service

    response = await client.get("/api/v1/chatbot", params={"text": "  ", "username": "alice"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Question is required"


@pytest.mark.parametrize(
    ("error", "status_code", "detail"),
    [
        (
            InvalidQueryError("Exactly one of tenant id or username is required"),
            400,
            "Exactly one of tenant id or username is required",
        ),
        (TenantNotFoundError("ghost"), 404, "Chatbot owner not found: ghost"),
        (RuntimeError("boom"), 500, "Failed to process chatbot query: boom"),
    ],
)
async def test_errors_map_to_status_codes(error, status_code, detail):
    transport = ASGITransport(app=_make_app(FakeAnswerService(error=error)))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/api/v1/chatbot", json={"question": "hi", "tenantHandle": "ghost"}
        )

    assert response.status_code == status_code
    assert response.json()["detail"] == detail


async def test_503_when_service_not_initialized():
    transport = ASGITransport(app=_make_app(None))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/chatbot", params={"text": "hi", "username": "alice"})

    assert response.status_code == 503
    assert "not available" in response.json()["detail"]


# ── Debug Authorization Tests ───────────────────────────────────────────────


async def test_debug_returned_to_owner(client_and_service):
    client, _ = client_and_service
    token = create_access_token({"sub": TENANT_ID})

    response = await client.get(
        "/api/v1/chatbot",
        params={"text": "hi", "username": "alice", "debug": "true"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    debug = response.json()["debug"]
    assert debug["semanticMatchCount"] == 10
    assert debug["postFilterCount"] == 1
    assert debug["entriesRetrieved"] == 1
    assert debug["tenantId"] == TENANT_ID
    assert debug["tenantHandle"] == "alice"
    assert debug["source"] == "semantic"


async def test_debug_hidden_from_anonymous_caller(client_and_service):
    client, _ = client_and_service

    response = await client.get(
        "/api/v1/chatbot", params={"text": "hi", "username": "alice", "debug": "true"}
    )

    assert response.status_code == 200
    assert "debug" not in response.json()


async def test_debug_hidden_from_other_owner(client_and_service):
    client, _ = client_and_service
    token = create_access_token({"sub": str(uuid.uuid4())})

    response = await client.post(
        "/api/v1/chatbot",
        json={"question": "hi", "tenantHandle": "alice", "debug": True},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    assert "debug" not in response.json()


async def test_invalid_token_is_treated_as_anonymous(client_and_service):
    client, _ = client_and_service

    response = await client.get(
        "/api/v1/chatbot",
        params={"text": "hi", "username": "alice", "debug": "true"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 200
    assert "debug" not in response.json()

"""Chatbot answer endpoints.

GET serves the embedded chat widget (query parameters), POST accepts a JSON
body. Both resolve the chatbot owner from exactly one of tenant_id / username,
run retrieval + generation, and return the answer. Retrieval diagnostics are
returned only when requested by the authenticated owner of the chatbot.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.app.api.deps import get_answer_service, get_optional_owner_id
from src.app.schemas.chatbot import ChatbotRequest, ChatbotResponse
from src.knowledge.answer import AnswerService
from src.knowledge.errors import InvalidQueryError, TenantNotFoundError
from src.knowledge.models import ChatQuery, TenantId, parse_tenant_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/chatbot", tags=["chatbot"])


def _parse_tenant_id(value: str | None) -> TenantId | None:
    """Parse an optional tenant id, rejecting malformed values with 400."""
    if value is None or not value.strip():
        return None
    tenant_id = parse_tenant_id(value.strip())
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tenant id: {value}",
        )
    return tenant_id


async def _answer(
    service: AnswerService,
    query: ChatQuery,
    owner_id: str | None,
) -> ChatbotResponse:
    """Run the answer service and map pipeline errors to HTTP errors."""
    try:
        answer = await service.answer(query, include_debug=query.debug)
    except InvalidQueryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except TenantNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except Exception as exc:
        logger.error("chatbot.query_failed", error=str(exc), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process chatbot query: {exc}",
        )

    # Debug diagnostics are for the chatbot owner only
    if answer.debug is not None and answer.debug.tenant_id != owner_id:
        answer = answer.model_copy(update={"debug": None})

    return ChatbotResponse.from_answer(answer)


@router.get("", response_model=ChatbotResponse, response_model_exclude_none=True)
async def ask_chatbot(
    text: str | None = Query(default=None, description="Question text"),
    question: str | None = Query(default=None, description="Alias of text"),
    tenant_id: str | None = Query(default=None, description="Chatbot owner id"),
    user_id: str | None = Query(default=None, alias="userId", description="Alias of tenant_id"),
    username: str | None = Query(default=None, description="Chatbot owner username"),
    debug: bool = Query(default=False),
    service: AnswerService = Depends(get_answer_service),
    owner_id: str | None = Depends(get_optional_owner_id),
):
    """Answer a question addressed to a tenant's chatbot (widget form)."""
    query = ChatQuery(
        question=text or question or "",
        tenant_id=_parse_tenant_id(tenant_id if tenant_id is not None else user_id),
        tenant_handle=username or None,
        debug=debug,
    )
    return await _answer(service, query, owner_id)


@router.post("", response_model=ChatbotResponse, response_model_exclude_none=True)
async def post_chatbot(
    body: ChatbotRequest,
    service: AnswerService = Depends(get_answer_service),
    owner_id: str | None = Depends(get_optional_owner_id),
):
    """Answer a question addressed to a tenant's chatbot (JSON form)."""
    query = ChatQuery(
        question=body.question,
        tenant_id=_parse_tenant_id(body.tenant_id),
        tenant_handle=body.tenant_handle or None,
        debug=body.debug,
    )
    return await _answer(service, query, owner_id)

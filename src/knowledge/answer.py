"""Answer service: retrieval, prompt composition and generation.

Runs the retrieval engine, composes the personalized prompt and calls the
generation model. A failed generation call becomes a polite apology string
so the chat UI never shows a raw error mid-conversation.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

from src.knowledge.models import AnswerDebug, ChatAnswer, ChatQuery, RetrievalResult
from src.knowledge.prompts import compose_messages
from src.knowledge.retrieval import RetrievalEngine

logger = structlog.get_logger(__name__)

GENERATION_ERROR_ANSWER = (
    "I'm sorry, I encountered an error while processing your question. "
    "Please try again later."
)
EMPTY_GENERATION_ANSWER = "I apologize, but I could not generate a response."


class Generator(Protocol):
    async def completion(
        self,
        messages: list[dict],
        model: str = ...,
        max_tokens: int = ...,
        temperature: float = ...,
        metadata: dict | None = None,
    ) -> dict: ...


def build_debug(result: RetrievalResult) -> AnswerDebug:
    """Project retrieval diagnostics into the owner-facing debug block."""
    diagnostics = result.diagnostics
    return AnswerDebug(
        semantic_match_count=diagnostics.semantic_match_count,
        post_filter_count=diagnostics.post_filter_count,
        matching_ids=[str(i) for i in diagnostics.matching_ids],
        entries_retrieved=diagnostics.entries_retrieved,
        tenant_id=str(result.tenant.tenant_id),
        tenant_handle=result.tenant.handle,
        source=result.source,
        fallback_reason=diagnostics.fallback_reason,
    )


class AnswerService:
    """Answers chatbot questions on behalf of a tenant.

    Args:
        engine: Retrieval engine producing the context entries.
        generator: Generation gateway (LLMService or a test double).
        generation_options: Extra keyword arguments for every completion call
            (model group, max_tokens, temperature).
    """

    def __init__(
        self,
        engine: RetrievalEngine,
        generator: Generator,
        generation_options: dict[str, Any] | None = None,
    ) -> None:
        self._engine = engine
        self._generator = generator
        self._generation_options = generation_options or {}

    async def answer(self, query: ChatQuery, include_debug: bool = False) -> ChatAnswer:
        """Answer a query.

        Args:
            query: The chatbot query.
            include_debug: Attach the diagnostic block. The caller is
                responsible for checking the requester owns the chatbot.

        Raises:
            InvalidQueryError: Empty question or bad tenant identifiers.
            TenantNotFoundError: Unknown tenant.
        """
        result = await self._engine.retrieve(query)
        messages = compose_messages(result.tenant, result.entries, query.question.strip())
        answer = await self._generate(messages, result)

        return ChatAnswer(
            answer=answer,
            context_used=result.context_used,
            entries_used=len(result.entries),
            source=result.source,
            debug=build_debug(result) if include_debug else None,
        )

    async def _generate(self, messages: list[dict], result: RetrievalResult) -> str:
        try:
            response = await self._generator.completion(
                messages=messages,
                metadata={
                    "tenant_id": str(result.tenant.tenant_id),
                    "tenant_handle": result.tenant.handle,
                    "retrieval_source": result.source.value,
                },
                **self._generation_options,
            )
        except Exception:
            logger.warning(
                "answer.generation_failed",
                tenant_id=str(result.tenant.tenant_id),
                exc_info=True,
            )
            return GENERATION_ERROR_ANSWER

        content = (response or {}).get("content")
        if not content or not str(content).strip():
            return EMPTY_GENERATION_ANSWER
        return str(content)

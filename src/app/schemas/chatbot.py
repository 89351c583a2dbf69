"""Pydantic schemas for the chatbot endpoints.

Wire format is camelCase (contextUsed, entriesUsed, ...) to match the chat
widget; models accept snake_case names as well.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.knowledge.models import ChatAnswer, RetrievalSource


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatbotRequest(_CamelModel):
    """Request body for POST /api/v1/chatbot."""

    question: str = Field(default="", description="Free-text question")
    tenant_id: str | None = Field(default=None, description="Chatbot owner id")
    tenant_handle: str | None = Field(default=None, description="Chatbot owner username")
    debug: bool = Field(default=False, description="Return retrieval diagnostics (owner only)")


class ChatbotDebug(_CamelModel):
    """Retrieval diagnostics, returned to the chatbot owner only."""

    semantic_match_count: int
    post_filter_count: int
    matching_ids: list[str]
    entries_retrieved: int
    tenant_id: str
    tenant_handle: str
    source: RetrievalSource
    fallback_reason: str | None = None


class ChatbotResponse(_CamelModel):
    """Response schema for chatbot answers."""

    answer: str
    context_used: bool
    entries_used: int
    debug: ChatbotDebug | None = None

    @classmethod
    def from_answer(cls, answer: ChatAnswer) -> ChatbotResponse:
        return cls(
            answer=answer.answer,
            context_used=answer.context_used,
            entries_used=answer.entries_used,
            debug=ChatbotDebug(**answer.debug.model_dump()) if answer.debug else None,
        )

"""Generation gateway via LiteLLM Router.

Provides the chat completion call used to answer chatbot questions:
- A "chat" model group with an OpenAI primary deployment
- An Anthropic deployment in the same group as fallback when configured
- Tenant metadata on every call for cost tracking
"""

from __future__ import annotations

import structlog
from litellm import Router

from src.app.config import get_settings

logger = structlog.get_logger(__name__)

CHAT_MODEL_GROUP = "chat"


class LLMService:
    """LLM provider abstraction with LiteLLM Router.

    Deployments are registered under a single model group so the Router
    falls over to the next one when a provider is unavailable.
    """

    def __init__(self) -> None:
        settings = get_settings()

        model_list = []

        if settings.OPENAI_API_KEY:
            model_list.append({
                "model_name": CHAT_MODEL_GROUP,
                "litellm_params": {
                    "model": settings.LLM_CHAT_MODEL,
                    "api_key": settings.OPENAI_API_KEY,
                },
            })

        if settings.ANTHROPIC_API_KEY:
            model_list.append({
                "model_name": CHAT_MODEL_GROUP,
                "litellm_params": {
                    "model": settings.LLM_FALLBACK_MODEL,
                    "api_key": settings.ANTHROPIC_API_KEY,
                },
            })

        if not model_list:
            logger.warning("llm.no_api_keys", detail="LLM service will be unavailable")
            self.router = None
            return

        self.router = Router(
            model_list=model_list,
            num_retries=settings.LLM_MAX_RETRIES,
            timeout=settings.LLM_TIMEOUT,
            allowed_fails=3,
            cooldown_time=30,
        )

    async def completion(
        self,
        messages: list[dict],
        model: str = CHAT_MODEL_GROUP,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict:
        """Execute a completion call through the LiteLLM Router.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model group name.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0-2).
            metadata: Tenant / retrieval metadata attached to the call.

        Returns:
            Dict with content, model, and usage.

        Raises:
            RuntimeError: If no LLM API keys are configured.
        """
        if not self.router:
            raise RuntimeError("No LLM API keys configured")

        response = await self.router.acompletion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            metadata=metadata or {},
        )

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return {
            "content": response.choices[0].message.content,
            "model": response.model,
            "usage": usage,
        }


# ── Singleton ─────────────────────────────────────────────────────────────────

_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service

"""FastAPI dependency injection for chatbot services and owner identification."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.app.core.security import verify_token
from src.knowledge.answer import AnswerService


def get_answer_service(request: Request) -> AnswerService:
    """Return the AnswerService built at startup.

    Raises:
        HTTPException(503): If the service failed to initialize.
    """
    service = getattr(request.app.state, "answer_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chatbot service is not available. Check startup logs for initialization errors.",
        )
    return service


async def get_optional_owner_id(request: Request) -> str | None:
    """Tenant id of the authenticated caller, or None for anonymous visitors.

    Public chatbot pages are unauthenticated, so a missing or invalid bearer
    token never fails the request; it only means the caller is not an owner.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    try:
        payload = verify_token(auth_header[7:], token_type="access")
    except HTTPException:
        return None
    return str(payload["sub"])

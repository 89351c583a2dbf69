"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. Readiness
requires the database and the vector index; Redis only backs the tenant
cache, so a Redis outage is reported without failing readiness.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.app.config import get_settings
from src.app.core.database import get_engine
from src.app.core.redis import get_redis_pool

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_dependencies(request: Request) -> dict:
    """Check database, Redis, Qdrant, and LLM configuration. Returns check results dict."""
    checks: dict = {"database": "ok", "redis": "ok", "qdrant": "ok", "llm": "ok"}

    # Check database
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)

    # Check Redis
    try:
        redis = get_redis_pool()
        pong = await redis.ping()
        if not pong:
            checks["redis"] = "error"
            checks["redis_error"] = "PING did not return PONG"
    except Exception as e:
        checks["redis"] = "error"
        checks["redis_error"] = str(e)

    # Check Qdrant through the index built at startup
    vector_index = getattr(request.app.state, "vector_index", None)
    if vector_index is None:
        checks["qdrant"] = "error"
        checks["qdrant_error"] = "vector index not initialized"
    else:
        try:
            await vector_index.client.get_collections()
        except Exception as e:
            checks["qdrant"] = "error"
            checks["qdrant_error"] = str(e)

    # Check LLM (verify at least one provider key is configured)
    settings = get_settings()
    if not (settings.OPENAI_API_KEY or settings.ANTHROPIC_API_KEY):
        checks["llm"] = "no_keys"

    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies DB and Qdrant connectivity.

    Returns 200 if both pass, 503 otherwise.
    """
    checks = await _check_dependencies(request)
    all_healthy = checks.get("database") == "ok" and checks.get("qdrant") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )

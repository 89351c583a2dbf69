"""FastAPI application factory.

Creates the app with logging middleware, CORS, lifespan events for database
and vector index initialization, the chatbot answer service, and the v1 API
router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router
from src.app.config import get_settings
from src.app.core.database import close_db, get_session, init_db
from src.app.core.redis import close_redis, get_redis_pool


def build_answer_service(app: FastAPI) -> None:
    """Wire gateways, retrieval engine and generation into app.state.answer_service."""
    from src.app.services.knowledge_store import KnowledgeStore
    from src.app.services.llm import get_llm_service
    from src.app.services.tenant_resolver import TenantResolver
    from src.knowledge.answer import AnswerService
    from src.knowledge.config import KnowledgeBaseConfig
    from src.knowledge.embeddings import EmbeddingService
    from src.knowledge.retrieval import RetrievalEngine
    from src.knowledge.vector_index import QdrantVectorIndex

    settings = get_settings()
    kb_config = KnowledgeBaseConfig()
    if not kb_config.openai_api_key:
        kb_config.openai_api_key = settings.OPENAI_API_KEY

    vector_index = getattr(app.state, "vector_index", None) or QdrantVectorIndex(kb_config)
    engine = RetrievalEngine(
        tenants=TenantResolver(
            session_factory=get_session,
            redis_client=getattr(app.state, "redis_client", None),
            cache_ttl=settings.TENANT_CACHE_TTL_SECONDS,
        ),
        embedder=EmbeddingService(kb_config),
        index=vector_index,
        store=KnowledgeStore(session_factory=get_session),
        search_overfetch=kb_config.search_overfetch,
        max_context_entries=kb_config.max_context_entries,
    )
    app.state.vector_index = vector_index
    app.state.answer_service = AnswerService(
        engine=engine,
        generator=get_llm_service(),
        generation_options={
            "max_tokens": settings.LLM_MAX_TOKENS,
            "temperature": settings.LLM_TEMPERATURE,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, vector index and services on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    configure_structlog()
    await init_db()

    # Tenant cache is optional; the resolver falls through to the database
    try:
        app.state.redis_client = get_redis_pool()
    except Exception:
        log.warning("startup.redis_unavailable", exc_info=True)
        app.state.redis_client = None

    try:
        build_answer_service(app)
        await app.state.vector_index.initialize_collection()
        log.info("startup.answer_service_initialized")
    except Exception:
        log.error("startup.answer_service_init_failed", exc_info=True)
        app.state.answer_service = None

    yield

    vector_index = getattr(app.state, "vector_index", None)
    if vector_index is not None:
        try:
            await vector_index.close()
        except Exception:
            log.warning("shutdown.vector_index_close_failed", exc_info=True)

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FAQ Chatbot API",
        version="0.1.0",
        description="Tenant-scoped FAQ chatbot with semantic retrieval and recency fallback",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()

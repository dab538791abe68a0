from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes.v1 import router as v1_router
from core.constants import get_settings
from integrations.completion_client import StructuredCompletionClient
from utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local) - no manual dotenv loading needed
settings = get_settings()

if settings.debug:
    from core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(f"Settings: app_env={settings.app_env}, provider={settings.api_provider}")

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: completion client created once and closed on shutdown."""
    if settings.api_provider == "azure":
        logger.info(f"Configuring Azure OpenAI client (endpoint: {settings.azure_endpoint_str})")
    else:
        logger.info("Configuring OpenAI client")

    app.state.completion_client = StructuredCompletionClient.from_settings(settings)

    try:
        yield
    finally:
        logger.info("Initiating shutdown")
        await app.state.completion_client.close()
        app.state.completion_client = None


app = FastAPI(
    title="Esmero API",
    description="""
## Esmero API

Writing assistant backend for the Esmero canvas editor.

### Features
- **Agent**: Conversation + document context in, reply + reasoning + diff chunks out
- **Streaming**: Server-sent events with diff chunks emitted as soon as they complete
- **Titles**: Short document titles from content

### Versioning
API uses URL path versioning: `/api/v1/...`
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints for monitoring and orchestration"},
        {"name": "Agent", "description": "Writing assistant requests (JSON and SSE)"},
        {"name": "Titles", "description": "Document title generation"},
    ],
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Note: Middleware is executed in reverse order of registration
app.add_middleware(RequestContextMiddleware)

# The canvas editor runs on its own dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes - API v1
app.include_router(v1_router, prefix="/api/v1")

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
        reload_dirs=["src"],
    )

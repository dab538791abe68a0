from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from api.middleware.exception_handlers import AppException
from api.services.agent_service import AgentService
from api.services.title_service import TitleService
from core.constants import Settings, get_settings
from integrations.completion_client import StructuredCompletionClient
from models.error_models import ErrorCode


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


def get_completion_client(request: Request) -> StructuredCompletionClient:
    """Get the completion client created during application startup."""
    client: StructuredCompletionClient | None = getattr(request.app.state, "completion_client", None)
    if client is None:
        raise AppException(
            code=ErrorCode.INTERNAL_CONFIGURATION_ERROR,
            message="Completion client not initialized",
        )
    return client


def get_agent_service(
    client: Annotated[StructuredCompletionClient, Depends(get_completion_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AgentService:
    """Provide a per-request agent service over the shared completion client."""
    return AgentService(client, model=settings.agent_model)


def get_title_service(
    client: Annotated[StructuredCompletionClient, Depends(get_completion_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TitleService:
    return TitleService(client, model=settings.title_model)


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Agent = Annotated[AgentService, Depends(get_agent_service)]
Titles = Annotated[TitleService, Depends(get_title_service)]

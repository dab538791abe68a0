from __future__ import annotations

from fastapi import APIRouter, Request

from api.dependencies import AppSettings
from models.schemas.health import HealthResponse, LivenessResponse, ProviderHealth

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, settings: AppSettings) -> HealthResponse:
    """Health check with completion provider status."""
    configured = getattr(request.app.state, "completion_client", None) is not None
    return HealthResponse(
        status="healthy" if configured else "degraded",
        version=settings.app_version,
        provider=ProviderHealth(provider=settings.api_provider, configured=configured),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe (just confirms process is running)."""
    return LivenessResponse()

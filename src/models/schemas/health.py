"""
Health check API schemas.

Response models for health and liveness probes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProviderHealth(BaseModel):
    """Completion provider configuration status."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "provider": "openai",
                "configured": True,
            }
        }
    )

    provider: str = Field(..., description="Configured completion provider")
    configured: bool = Field(..., description="A completion client is available")


class HealthResponse(BaseModel):
    """Health check response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "provider": {"provider": "openai", "configured": True},
            }
        }
    )

    status: Literal["healthy", "degraded"] = Field(..., description="Overall service health status")
    version: str = Field(..., description="Application version")
    provider: ProviderHealth = Field(..., description="Completion provider health")


class LivenessResponse(BaseModel):
    """Kubernetes-style liveness probe response."""

    alive: bool = Field(default=True, description="Process is running")

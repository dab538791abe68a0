"""
Centralized API schemas for Esmero.

Response models for operational endpoints with OpenAPI examples.
"""

from models.error_models import ErrorDetail, ErrorResponse
from models.schemas.health import HealthResponse, LivenessResponse, ProviderHealth

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "LivenessResponse",
    "ProviderHealth",
]

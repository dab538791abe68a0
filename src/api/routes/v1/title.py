from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import Titles
from api.middleware.exception_handlers import ValidationException
from models.agent_models import TitleRequest, TitleResponse
from models.error_models import ErrorDetail

router = APIRouter()


@router.post("/generate-title", response_model=TitleResponse)
async def generate_title(body: TitleRequest, titles: Titles) -> TitleResponse:
    """Generate a short title for document content."""
    if not body.content.strip():
        raise ValidationException(
            message="Content is required",
            errors=[ErrorDetail(field="content", message="Content must not be blank")],
        )
    return TitleResponse(title=await titles.generate_title(body.content))

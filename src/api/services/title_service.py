from __future__ import annotations

from core.constants import DEFAULT_TITLE, TITLE_MAX_TOKENS, TITLE_TEMPERATURE, get_settings
from core.prompts import build_title_prompts
from integrations.completion_client import StructuredCompletionClient
from models.context_models import LLMConfig
from utils.html_text import contains_markup, extract_plain_text, is_html_empty
from utils.logger import logger


class TitleService:
    """Short document titles from document content."""

    def __init__(self, client: StructuredCompletionClient, model: str | None = None):
        self.client = client
        self.model = model

    async def generate_title(self, content: str) -> str:
        """Return a 2-4 word title, or DEFAULT_TITLE when generation fails."""
        if is_html_empty(content):
            return DEFAULT_TITLE
        # Plain text goes to the model verbatim
        text = extract_plain_text(content) if contains_markup(content) else content.strip()

        config = LLMConfig(
            model=self.model or get_settings().title_model,
            temperature=TITLE_TEMPERATURE,
            max_tokens=TITLE_MAX_TOKENS,
        )
        title = await self.client.complete_text(
            build_title_prompts(text),
            config,
            fallback=DEFAULT_TITLE,
            purpose="title",
        )
        title = title.strip()
        logger.debug(f"Generated title: {title or DEFAULT_TITLE}")
        return title or DEFAULT_TITLE

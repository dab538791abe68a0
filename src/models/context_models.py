"""
Per-request context models.

Everything here is derived from one AgentRequest and discarded after the
response; nothing is shared between concurrent requests.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from models.agent_models import Message


class PreparedHistory(BaseModel):
    """Bounded window of conversation history."""

    recent_messages: list[Message]
    compressed_history: str | None = None


class ConversationContext(BaseModel):
    messages: list[Message] = Field(default_factory=list)
    structured: str = ""


class CurrentPage(BaseModel):
    """What the user is looking at on the canvas, as plain text."""

    id: str
    title: str
    content: str


class FolderDocument(BaseModel):
    """A related document selected for the prompt, content already plain text."""

    id: str
    title: str
    content: str
    folder_id: str | None = None
    folder_name: str | None = None


class FileContext(BaseModel):
    current_selection: str | None = None
    current_page: CurrentPage | None = None
    folder_documents: list[FolderDocument] = Field(default_factory=list)
    structured: str = ""


class Context(BaseModel):
    """Unit handed to the prompt builder. Both halves are built independently."""

    conversation: ConversationContext
    file: FileContext


class LLMContext(BaseModel):
    system_prompt: str
    user_prompt: str


class LLMConfig(BaseModel):
    """Sampling parameters for one completion call. Unset fields inherit defaults."""

    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)
    timeout: float | None = Field(default=None, gt=0.0)

    def merge(self, overrides: LLMConfig | None) -> LLMConfig:
        """Return a copy with every field set on ``overrides`` taking precedence."""
        if overrides is None:
            return self.model_copy()
        return self.model_copy(update=overrides.model_dump(exclude_none=True))

    def to_request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``chat.completions.create``."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return {k: v for k, v in kwargs.items() if v is not None}


__all__ = [
    "Context",
    "ConversationContext",
    "CurrentPage",
    "FileContext",
    "FolderDocument",
    "LLMConfig",
    "LLMContext",
    "PreparedHistory",
]

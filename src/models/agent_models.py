"""
Agent request, response and stream event models.

Wire JSON keeps the canvas editor's camelCase names (``userMessage``,
``oldText``, ``folderId``); Python code uses snake_case through aliases.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.constants import (
    EVENT_TYPE_CHUNK,
    EVENT_TYPE_DONE,
    EVENT_TYPE_ERROR,
    EVENT_TYPE_MESSAGE,
    MAX_RELEVANT_WITHOUT_LLM,
)


class CamelModel(BaseModel):
    """Base model serializing to camelCase while accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        """Dump with camelCase keys for JSON responses."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Request Data
# ============================================================================


class Message(CamelModel):
    """One conversation turn. The client owns history and resends it each call."""

    id: str
    role: Literal["user", "agent"]
    content: str
    timestamp: int = Field(..., description="Unix epoch milliseconds")
    intelligence: str | None = Field(default=None, description="Assistant reasoning attached to agent turns")


class Document(CamelModel):
    """Canvas document as stored by the client."""

    id: str
    title: str = ""
    content: str = Field(default="", description="HTML content")
    folder_id: str | None = None


class Folder(CamelModel):
    id: str
    name: str


class AgentRequest(CamelModel):
    """Incoming writing assistant request."""

    user_message: str = Field(..., min_length=1)
    conversation_history: list[Message] = Field(default_factory=list, description="Prior turns only")
    canvas_content: str | None = Field(default=None, description="Live canvas HTML; empty string counts as present")
    selected_text: str | None = None
    current_document_id: str | None = None
    current_folder_id: str | None = None
    documents: list[Document] = Field(default_factory=list)
    folders: list[Folder] = Field(default_factory=list)


# ============================================================================
# Structured LLM Output
# ============================================================================


class LLMDiffChunk(BaseModel):
    """One edit as the model produces it."""

    oldText: str = Field(..., description="Exact text from canvas to be replaced")
    newText: str = Field(..., description="New text to replace with")
    explanation: str = Field(..., description="Why this specific change is needed")


class LLMDiff(BaseModel):
    chunks: list[LLMDiffChunk] = Field(
        ..., description="Array of text chunks to replace - each chunk is independent"
    )
    explanation: str = Field(..., description="Overall explanation of all the changes")


class AgentLLMResponse(BaseModel):
    """Structured response from the writing assistant."""

    reasoning: str = Field(..., description="Internal thinking process about the request")
    response: str = Field(..., description="Text response to the user")
    diff: LLMDiff | None = Field(
        default=None,
        description=(
            "Suggested edits to canvas content as chunks. Return null if no edits needed. "
            "Each chunk shows old → new text with red/green diff."
        ),
    )


class FolderRelevance(BaseModel):
    """Folders relevant to the user's message."""

    relevantFolderIds: list[str] = Field(
        ..., max_length=MAX_RELEVANT_WITHOUT_LLM, description="IDs of relevant folders (max 5)"
    )


class DocumentRelevance(BaseModel):
    """Documents relevant to the user's message."""

    relevantDocumentIds: list[str] = Field(
        ..., max_length=MAX_RELEVANT_WITHOUT_LLM, description="IDs of relevant documents (max 5)"
    )


# ============================================================================
# Agent Results
# ============================================================================


class DiffChunk(CamelModel):
    """Edit chunk handed to the client. Partial stream objects fill missing fields with ''."""

    id: str = ""
    old_text: str = ""
    new_text: str = ""
    explanation: str = ""


class Diff(CamelModel):
    chunks: list[DiffChunk] = Field(default_factory=list)
    explanation: str = ""


class AgentExecutionResult(BaseModel):
    """Outcome of one atomic agent call."""

    response: str
    diff: Diff | None = None
    reasoning: str


class AgentResponse(CamelModel):
    """Atomic route response body."""

    message: str
    diff: Diff | None = None
    reasoning: str

    @classmethod
    def from_result(cls, result: AgentExecutionResult) -> AgentResponse:
        return cls(message=result.response, diff=result.diff, reasoning=result.reasoning)


# ============================================================================
# Stream Events
# ============================================================================


class ChunkEvent(CamelModel):
    type: Literal["chunk"] = EVENT_TYPE_CHUNK
    chunk: DiffChunk


class MessageEvent(CamelModel):
    type: Literal["message"] = EVENT_TYPE_MESSAGE
    message: str
    reasoning: str | None = None


class DoneEvent(CamelModel):
    type: Literal["done"] = EVENT_TYPE_DONE


class ErrorEvent(CamelModel):
    type: Literal["error"] = EVENT_TYPE_ERROR
    error: str


StreamEvent = Annotated[ChunkEvent | MessageEvent | DoneEvent | ErrorEvent, Field(discriminator="type")]


# ============================================================================
# Title Generation
# ============================================================================


class TitleRequest(BaseModel):
    content: str = Field(..., min_length=1, description="Document text or HTML")


class TitleResponse(BaseModel):
    title: str


__all__ = [
    "AgentExecutionResult",
    "AgentLLMResponse",
    "AgentRequest",
    "AgentResponse",
    "CamelModel",
    "ChunkEvent",
    "Diff",
    "DiffChunk",
    "Document",
    "DocumentRelevance",
    "DoneEvent",
    "ErrorEvent",
    "Folder",
    "FolderRelevance",
    "LLMDiff",
    "LLMDiffChunk",
    "Message",
    "MessageEvent",
    "StreamEvent",
    "TitleRequest",
    "TitleResponse",
]

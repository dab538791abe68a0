"""
Relevance filtering for folders and documents.

Small candidate sets pass through untouched. Larger ones are narrowed by a
cheap structured completion over titles only; any failure degrades to the
first candidates in input order.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from core.constants import (
    MAX_RELEVANT_WITHOUT_LLM,
    RELEVANCE_MAX_TOKENS,
    RELEVANCE_TEMPERATURE,
    get_settings,
)
from models.agent_models import Document, DocumentRelevance, Folder, FolderRelevance
from models.context_models import LLMConfig, LLMContext
from utils.logger import logger
from utils.metrics import relevance_fallbacks_total

if TYPE_CHECKING:
    from integrations.completion_client import StructuredCompletionClient

RelevanceKind = Literal["folder", "document"]

FOLDER_SYSTEM_PROMPT = """You are helping determine which folders are relevant to a user's question.
You will be given a list of folder names and the user's current message.
Select up to 5 folders that are most likely relevant to their question."""

DOCUMENT_SYSTEM_PROMPT = """You are helping determine which documents are relevant to a user's question.
You will be given a list of document titles and the user's current message.
Select up to 5 documents that are most likely relevant to their question."""


def build_relevance_prompt(
    candidates: Sequence[tuple[str, str]],
    user_message: str,
    kind: RelevanceKind,
    label: str,
) -> LLMContext:
    """Render the selection prompt from ``(id, name)`` pairs."""
    listing = "\n".join(f"- {candidate_id}: {name}" for candidate_id, name in candidates)
    noun = "folders" if kind == "folder" else "documents"
    user_prompt = (
        f'User\'s message: "{user_message}"\n\n'
        f"Available {label}:\n{listing}\n\n"
        f"Which {noun} are most relevant to this message? Return their IDs."
    )
    system_prompt = FOLDER_SYSTEM_PROMPT if kind == "folder" else DOCUMENT_SYSTEM_PROMPT
    return LLMContext(system_prompt=system_prompt, user_prompt=user_prompt)


class RelevanceFilter:
    """Selects at most MAX_RELEVANT_WITHOUT_LLM candidates for a user message."""

    def __init__(self, client: StructuredCompletionClient, model: str | None = None):
        self.client = client
        self.model = model

    def _config(self) -> LLMConfig:
        model = self.model
        if model is None:
            model = get_settings().relevance_model
        return LLMConfig(model=model, temperature=RELEVANCE_TEMPERATURE, max_tokens=RELEVANCE_MAX_TOKENS)

    async def filter_relevant(
        self,
        candidates: Sequence[tuple[str, str]],
        user_message: str,
        kind: RelevanceKind,
        label: str | None = None,
    ) -> list[str]:
        """Return relevant candidate ids. Never raises."""
        ids = [candidate_id for candidate_id, _ in candidates]
        if len(candidates) <= MAX_RELEVANT_WITHOUT_LLM:
            return ids

        prompt = build_relevance_prompt(candidates, user_message, kind, label or f"{kind}s")
        schema: type[BaseModel] = FolderRelevance if kind == "folder" else DocumentRelevance

        try:
            result = await self.client.complete(
                prompt,
                schema,
                self._config(),
                name=f"{kind}_relevance",
                description=f"Selected relevant {kind}s",
                purpose="relevance",
            )
        except Exception as e:
            logger.warning(
                f"Relevance filtering failed, using first {MAX_RELEVANT_WITHOUT_LLM} {kind}s: {e}",
                kind=kind,
                candidates=len(candidates),
            )
            relevance_fallbacks_total.labels(kind=kind).inc()
            return ids[:MAX_RELEVANT_WITHOUT_LLM]

        selected = result.relevantFolderIds if isinstance(result, FolderRelevance) else result.relevantDocumentIds
        known = set(ids)
        relevant = [candidate_id for candidate_id in dict.fromkeys(selected) if candidate_id in known]

        dropped = len(selected) - len(relevant)
        if dropped:
            logger.debug(f"Dropped {dropped} unknown {kind} id(s) from relevance result")
        return relevant

    async def filter_folders(self, folders: Sequence[Folder], user_message: str) -> list[str]:
        return await self.filter_relevant(
            [(folder.id, folder.name) for folder in folders], user_message, "folder", "folders"
        )

    async def filter_documents(
        self,
        documents: Sequence[Document],
        user_message: str,
        label: str = "documents",
    ) -> list[str]:
        return await self.filter_relevant(
            [(doc.id, doc.title) for doc in documents], user_message, "document", label
        )

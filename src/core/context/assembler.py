"""
Context assembly: conversation and file context built concurrently and joined.
"""

from __future__ import annotations

import asyncio

from collections.abc import Sequence

from core.constants import FALLBACK_RECENT_MESSAGES
from core.context.conversation import CONVERSATION_ERROR_STRUCTURED, determine_conversation
from core.context.file_context import FILE_ERROR_STRUCTURED, determine_file
from core.context.relevance import RelevanceFilter
from models.agent_models import AgentRequest, Message
from models.context_models import Context, ConversationContext, FileContext
from utils.logger import logger


def _degraded_conversation(messages: Sequence[Message]) -> ConversationContext:
    return ConversationContext(
        messages=list(messages[-FALLBACK_RECENT_MESSAGES:]),
        structured=CONVERSATION_ERROR_STRUCTURED,
    )


def _degraded_file() -> FileContext:
    return FileContext(structured=FILE_ERROR_STRUCTURED)


class ContextAssembler:
    """Builds the prompt Context for one request."""

    def __init__(self, relevance: RelevanceFilter):
        self.relevance = relevance

    async def _conversation(self, messages: Sequence[Message]) -> ConversationContext:
        return determine_conversation(messages)

    async def assemble(self, request: AgentRequest) -> Context:
        """Join both context halves. Never raises; failed halves carry an error marker."""
        history = request.conversation_history

        try:
            conversation, file = await asyncio.gather(
                self._conversation(history),
                determine_file(request, self.relevance),
                return_exceptions=True,
            )
        except Exception as e:
            logger.error(f"Error determining context: {e}", exc_info=True)
            return Context(conversation=_degraded_conversation(history), file=_degraded_file())

        if isinstance(conversation, BaseException):
            logger.error(f"Conversation context failed: {conversation}")
            conversation = _degraded_conversation(history)
        if isinstance(file, BaseException):
            logger.error(f"File context failed: {file}")
            file = _degraded_file()

        return Context(conversation=conversation, file=file)

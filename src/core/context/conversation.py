"""
Conversation context: bounded history window and its prompt rendering.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from core.constants import FALLBACK_RECENT_MESSAGES, MAX_RECENT_MESSAGES
from models.agent_models import Message
from models.context_models import ConversationContext, PreparedHistory
from utils.logger import logger

CONVERSATION_ERROR_STRUCTURED = "<Recent_Messages>\n[Error loading conversation history]\n</Recent_Messages>"


def prepare_history(messages: Sequence[Message]) -> PreparedHistory:
    """Keep the most recent MAX_RECENT_MESSAGES turns in chronological order.

    Older turns are dropped, not summarized, so ``compressed_history`` is
    always None.
    """
    if len(messages) <= MAX_RECENT_MESSAGES:
        return PreparedHistory(recent_messages=list(messages))
    return PreparedHistory(recent_messages=list(messages[-MAX_RECENT_MESSAGES:]))


def format_timestamp(timestamp_ms: int) -> str:
    """24h HH:MM in UTC."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).strftime("%H:%M")


def format_message(message: Message) -> str:
    role = "User" if message.role == "user" else "Assistant"
    formatted = f"[{format_timestamp(message.timestamp)}] {role}: {message.content}"

    if message.role == "agent" and message.intelligence:
        formatted = f"[Assistant Reasoning]\n{message.intelligence}\n\n{formatted}"

    return formatted


def format_conversation(messages: Sequence[Message], compressed_history: str | None = None) -> str:
    """Render history as tagged blocks for the user prompt."""
    parts: list[str] = []

    if compressed_history:
        parts.extend(["<Conversation_History>", compressed_history, "</Conversation_History>", ""])

    parts.append("<Recent_Messages>")
    parts.extend(format_message(msg) for msg in messages)
    parts.append("</Recent_Messages>")

    return "\n".join(parts)


def determine_conversation(messages: Sequence[Message]) -> ConversationContext:
    """Build the conversation half of the context. Never raises."""
    try:
        prepared = prepare_history(messages)
        structured = format_conversation(prepared.recent_messages, prepared.compressed_history)
        return ConversationContext(messages=prepared.recent_messages, structured=structured)
    except Exception as e:
        logger.error(f"Error determining conversation context: {e}", exc_info=True)
        return ConversationContext(
            messages=list(messages[-FALLBACK_RECENT_MESSAGES:]),
            structured=CONVERSATION_ERROR_STRUCTURED,
        )

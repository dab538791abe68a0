"""
Context assembly for agent requests.

- conversation: bounded history window rendered as ``<Recent_Messages>``
- relevance: pass-through or LLM narrowing of folder/document candidates
- file_context: selection, current page and related documents as ``<File_Context>``
- assembler: runs both halves concurrently and joins them
"""

from core.context.assembler import ContextAssembler
from core.context.relevance import RelevanceFilter

__all__ = ["ContextAssembler", "RelevanceFilter"]

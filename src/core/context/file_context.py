"""
File context: selection, current page and related documents.

Every document body is reduced to plain text before it reaches the prompt
so diff ``oldText`` can be matched against the canvas.
"""

from __future__ import annotations

import asyncio

from collections.abc import Sequence

from core.constants import (
    BLANK_CANVAS_ID,
    BLANK_CANVAS_TITLE,
    CONTENT_TRUNCATED_MARKER,
    CURRENT_PAGE_MAX_CHARS,
    DOCUMENT_SNIPPET_MAX_CHARS,
    MAX_RELEVANT_WITHOUT_LLM,
    UNTITLED_DOCUMENT_TITLE,
)
from core.context.relevance import RelevanceFilter
from models.agent_models import AgentRequest, Document, Folder
from models.context_models import CurrentPage, FileContext, FolderDocument
from utils.html_text import extract_plain_text
from utils.logger import logger

FILE_ERROR_STRUCTURED = "<File_Context>\n[Error loading file context]\n</File_Context>"


def get_current_selection(selected_text: str | None) -> str | None:
    if not selected_text or not selected_text.strip():
        return None
    return selected_text.strip()


def get_current_page(
    canvas_content: str | None,
    current_document_id: str | None,
    documents: Sequence[Document],
) -> CurrentPage | None:
    """Resolve what the user is looking at.

    Live canvas content wins over the saved document whenever it was sent,
    including an empty string. The saved document is used only when no
    canvas content was sent at all.
    """
    if canvas_content is not None:
        content = extract_plain_text(canvas_content)
        if current_document_id:
            document = _find_document(documents, current_document_id)
            title = document.title if document and document.title else UNTITLED_DOCUMENT_TITLE
            return CurrentPage(id=current_document_id, title=title, content=content)
        return CurrentPage(id=BLANK_CANVAS_ID, title=BLANK_CANVAS_TITLE, content=content)

    if current_document_id:
        document = _find_document(documents, current_document_id)
        if document:
            return CurrentPage(id=document.id, title=document.title, content=extract_plain_text(document.content))

    return None


def _find_document(documents: Sequence[Document], document_id: str) -> Document | None:
    return next((doc for doc in documents if doc.id == document_id), None)


def _to_folder_document(doc: Document, folder_names: dict[str, str]) -> FolderDocument:
    return FolderDocument(
        id=doc.id,
        title=doc.title,
        content=extract_plain_text(doc.content),
        folder_id=doc.folder_id,
        folder_name=folder_names.get(doc.folder_id) if doc.folder_id else None,
    )


async def get_relevant_documents(
    relevance: RelevanceFilter,
    user_message: str,
    current_folder_id: str | None,
    current_document_id: str | None,
    documents: Sequence[Document],
    folders: Sequence[Folder],
) -> list[FolderDocument]:
    """Select related documents for the prompt.

    Folder selection and loose-document selection run concurrently, then
    every selected folder filters its own documents concurrently. The open
    document is never included.
    """
    folder_names = {folder.id: folder.name for folder in folders}

    try:
        loose_documents = [doc for doc in documents if doc.folder_id is None and doc.id != current_document_id]

        documents_by_folder: dict[str, list[Document]] = {}
        for doc in documents:
            if doc.folder_id and doc.id != current_document_id:
                documents_by_folder.setdefault(doc.folder_id, []).append(doc)

        # With no folder open every folder stays reachable
        if current_folder_id:
            candidate_folders = [folder for folder in folders if folder.id == current_folder_id]
        else:
            candidate_folders = list(folders)

        relevant_folder_ids, relevant_loose_ids = await asyncio.gather(
            relevance.filter_folders(candidate_folders, user_message),
            relevance.filter_documents(loose_documents, user_message, "loose documents"),
        )

        async def select_in_folder(folder_id: str) -> list[Document]:
            folder_docs = documents_by_folder.get(folder_id, [])
            relevant_ids = set(
                await relevance.filter_documents(
                    folder_docs,
                    user_message,
                    f"documents in folder {folder_names.get(folder_id, folder_id)}",
                )
            )
            return [doc for doc in folder_docs if doc.id in relevant_ids]

        per_folder = await asyncio.gather(*(select_in_folder(folder_id) for folder_id in relevant_folder_ids))

        loose_ids = set(relevant_loose_ids)
        selected = [doc for doc in loose_documents if doc.id in loose_ids]
        for folder_docs in per_folder:
            selected.extend(folder_docs)

        logger.debug(
            f"Selected {len(selected)} related document(s)",
            total_documents=len(documents),
            folders=len(folders),
        )
        return [_to_folder_document(doc, folder_names) for doc in selected]

    except Exception as e:
        logger.error(f"Error getting relevant documents: {e}", exc_info=True)
        fallback = [
            doc
            for doc in documents
            if doc.id != current_document_id and doc.folder_id == (current_folder_id or None)
        ]
        return [_to_folder_document(doc, folder_names) for doc in fallback[:MAX_RELEVANT_WITHOUT_LLM]]


def _truncate(text: str, limit: int, marker: str) -> str:
    if len(text) > limit:
        return text[:limit] + marker
    return text


def format_file_context(
    selection: str | None,
    current_page: CurrentPage | None,
    folder_documents: Sequence[FolderDocument],
) -> str:
    """Render the file half of the context as tagged blocks."""
    parts: list[str] = ["<File_Context>", ""]

    parts.append("<Current_Selection>")
    if selection:
        parts.append(f'User has selected the following text:\n"{selection}"')
    else:
        parts.append("No text currently selected.")
    parts.extend(["</Current_Selection>", ""])

    parts.append("<Current_Page>")
    if current_page:
        parts.extend([f"Title: {current_page.title}", "", "Content:"])
        parts.append(_truncate(current_page.content, CURRENT_PAGE_MAX_CHARS, CONTENT_TRUNCATED_MARKER))
    else:
        parts.append("No document currently open.")
    parts.extend(["</Current_Page>", ""])

    parts.append("<Folder_Documents>")
    if folder_documents:
        parts.extend([f"{len(folder_documents)} other document(s) available:", ""])
        for index, doc in enumerate(folder_documents, start=1):
            location = f"folder: {doc.folder_name}" if doc.folder_name else "loose document"
            parts.append(f"{index}. {doc.title} ({location})")
            parts.append(f"   {_truncate(doc.content, DOCUMENT_SNIPPET_MAX_CHARS, '...')}")
            parts.append("")
    else:
        parts.append("No other documents available.")
    parts.append("</Folder_Documents>")

    parts.append("</File_Context>")
    return "\n".join(parts)


async def determine_file(request: AgentRequest, relevance: RelevanceFilter) -> FileContext:
    """Build the file half of the context. Never raises."""
    try:
        selection = get_current_selection(request.selected_text)
        current_page = get_current_page(request.canvas_content, request.current_document_id, request.documents)
        folder_documents = await get_relevant_documents(
            relevance,
            request.user_message,
            request.current_folder_id,
            request.current_document_id,
            request.documents,
            request.folders,
        )

        return FileContext(
            current_selection=selection,
            current_page=current_page,
            folder_documents=folder_documents,
            structured=format_file_context(selection, current_page, folder_documents),
        )
    except Exception as e:
        logger.error(f"Error determining file context: {e}", exc_info=True)
        return FileContext(structured=FILE_ERROR_STRUCTURED)

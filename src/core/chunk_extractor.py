"""
Incremental extraction of completed diff chunks from a streamed JSON body.

The agent response streams as raw JSON text. Mid-stream the document is
never valid JSON, so the ``chunks`` array is located textually and only its
completed elements are parsed. Each call re-parses the array so far and
returns the elements beyond ``previous_count``.
"""

from __future__ import annotations

import json
import re

from typing import Any, NamedTuple, Protocol

_CHUNKS_ARRAY_START = re.compile(r'"chunks"\s*:\s*\[')


class ChunkExtraction(NamedTuple):
    chunks: list[Any]
    new_count: int


class ChunkExtractor(Protocol):
    """Anything that can turn accumulated stream text into newly completed chunks."""

    def extract(self, text: str, previous_count: int) -> ChunkExtraction: ...


def _array_body(text: str, start: int) -> str | None:
    """Return the completed portion of the array whose body begins at ``start``.

    Walks the characters tracking string and escape state so brackets inside
    string values are ignored. Stops at the array's closing bracket, or, while
    the array is still open, at the end of its last complete element.
    Returns None when no element has completed yet.
    """
    depth = 0
    in_string = False
    escaped = False
    complete_until: int | None = None

    for index in range(start, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
                if depth == 0:
                    complete_until = index + 1
            continue

        if char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            if depth == 0:
                return text[start:index]
            depth -= 1
            if depth == 0:
                complete_until = index + 1

    if complete_until is None:
        return None
    return text[start:complete_until]


def extract_new_chunks(text: str, previous_count: int) -> ChunkExtraction:
    """Return chunks completed since ``previous_count`` and the new total.

    Incomplete or malformed input is a no-op, never an error: the result is
    ``ChunkExtraction([], previous_count)``. The returned count never drops
    below ``previous_count``.

    Example:
        >>> extract_new_chunks('{"diff":{"chunks":[{"oldText":"a","newText":"b"},{"old', 0)
        ChunkExtraction(chunks=[{'oldText': 'a', 'newText': 'b'}], new_count=1)
    """
    try:
        match = _CHUNKS_ARRAY_START.search(text)
        if not match:
            return ChunkExtraction([], previous_count)

        body = _array_body(text, match.end())
        if body is None:
            return ChunkExtraction([], previous_count)

        parsed = json.loads(f"[{body}]")
        if not isinstance(parsed, list) or len(parsed) <= previous_count:
            return ChunkExtraction([], previous_count)

        return ChunkExtraction(parsed[previous_count:], len(parsed))
    except Exception:
        # Polled on every delta; anything unexpected just means "not yet"
        return ChunkExtraction([], previous_count)


class ArrayScanChunkExtractor:
    """Default extractor backed by ``extract_new_chunks``."""

    def extract(self, text: str, previous_count: int) -> ChunkExtraction:
        return extract_new_chunks(text, previous_count)

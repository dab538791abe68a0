"""
Best-effort HTML to plain-text conversion.

Document content arrives from the canvas editor as HTML. Everything that
enters a prompt goes through ``extract_plain_text`` so diff ``oldText`` values
line up with what the model was shown.
"""

from __future__ import annotations

import html
import re

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_MARKUP_PATTERN = re.compile(r"</?[A-Za-z][^>]*>|<!--")


def extract_plain_text(content: str | None) -> str:
    """Strip tags, decode entities and collapse whitespace.

    Example:
        >>> extract_plain_text("<p>Hello&nbsp;<b>world</b></p>")
        'Hello world'
    """
    if not content:
        return ""

    text = _TAG_PATTERN.sub("", content)
    text = html.unescape(text)
    # \s matches U+00A0 for str patterns, so decoded &nbsp; collapses too
    return _WHITESPACE_PATTERN.sub(" ", text).strip()



def is_html_empty(content: str | None) -> bool:
    """True when the HTML has no visible text."""
    return not extract_plain_text(content)


def contains_markup(content: str | None) -> bool:
    """True when the content holds at least one HTML tag or comment.

    Bare angle brackets in prose ("a < b and c > d") are not markup.
    """
    return bool(content and _MARKUP_PATTERN.search(content))

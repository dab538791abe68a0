from __future__ import annotations

import pytest

from utils.html_text import contains_markup, extract_plain_text, is_html_empty


@pytest.mark.parametrize(
    ("html", "expected"),
    [
        ("<p>Hello <strong>world</strong></p>", "Hello world"),
        ("<p>Fish &amp; chips &lt;3 &gt; &quot;best&quot; &#39;ever&#39;</p>", "Fish & chips <3 > \"best\" 'ever'"),
        ("Hello&nbsp;&nbsp;there", "Hello there"),
        ("  <div>\n\n  spaced   \t out </div>  ", "spaced out"),
        ("&eacute;t&#233; &#x2014;", "été —"),
    ],
)
def test_extract_plain_text(html: str, expected: str) -> None:
    assert extract_plain_text(html) == expected


def test_extract_plain_text_adjacent_blocks_are_joined() -> None:
    # Tags are removed without inserting separators
    assert extract_plain_text("<p>one</p><p>two</p>") == "onetwo"


@pytest.mark.parametrize("empty", ["", None])
def test_extract_plain_text_empty(empty: str | None) -> None:
    assert extract_plain_text(empty) == ""


def test_is_html_empty() -> None:
    assert is_html_empty("<p><br></p>")
    assert is_html_empty("<p>&nbsp;</p>")
    assert not is_html_empty("<p>x</p>")


def test_contains_markup() -> None:
    assert contains_markup("<p>x</p>")
    assert contains_markup("line<br/>break")
    assert contains_markup("<!-- note -->")
    assert not contains_markup("a < b and c > d")
    assert not contains_markup("plain words")
    assert not contains_markup(None)

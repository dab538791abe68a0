from __future__ import annotations

from datetime import datetime

from utils.json_utils import json_compact


def test_json_compact_has_no_spaces() -> None:
    assert json_compact({"type": "done", "n": [1, 2]}) == '{"type":"done","n":[1,2]}'


def test_json_compact_falls_back_to_str() -> None:
    stamp = datetime(2025, 1, 1, 12, 0)
    assert json_compact({"at": stamp}) == f'{{"at":"{stamp}"}}'


def test_json_compact_keeps_unicode_escaped() -> None:
    assert json_compact({"t": "é"}) == '{"t":"\\u00e9"}'

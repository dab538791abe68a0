"""Centralized JSON serialization utilities.

Pre-created partial functions for common JSON serialization patterns.
"""

from __future__ import annotations

import json

from collections.abc import Callable
from functools import partial

# Compact JSON serialization (no spaces) with fallback to str for non-serializable types.
# Use for SSE frames where size matters.
# Example: json_compact({"key": "value"}) -> '{"key":"value"}'
json_compact: Callable[..., str] = partial(json.dumps, separators=(",", ":"), default=str)

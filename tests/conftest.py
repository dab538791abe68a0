"""Shared test fixtures for the Esmero test suite.

This module provides common fixtures used across all test modules,
including a settings mock and fakes for the completion provider.
"""

from __future__ import annotations

import os
import tempfile

from collections.abc import AsyncIterator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before test collection
# ============================================================================


def _build_mock_settings() -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.api_provider = "openai"
    mock_settings.openai_api_key = "test-openai-key"
    mock_settings.azure_openai_api_key = None
    mock_settings.azure_openai_endpoint = None
    mock_settings.azure_endpoint_str = ""
    mock_settings.debug = False
    mock_settings.enable_content_logging = False
    mock_settings.app_env = "test"
    mock_settings.app_version = "1.0.0-test"
    mock_settings.default_model = "gpt-test-default"
    mock_settings.agent_model = "gpt-test-agent"
    mock_settings.relevance_model = "gpt-test-relevance"
    mock_settings.title_model = "gpt-test-title"
    mock_settings.default_temperature = 0.3
    mock_settings.default_top_p = 1.0
    mock_settings.default_max_tokens = 2000
    mock_settings.llm_timeout = 60.0
    mock_settings.http_read_timeout = 120.0
    mock_settings.cors_origins_list = ["*"]
    mock_settings.is_production = False
    mock_settings.api_host = "127.0.0.1"
    mock_settings.api_port = 3001
    return mock_settings


def pytest_configure(config: pytest.Config) -> None:
    """Configure settings mock before any test modules are imported.

    Conftest files below the root may import application modules before
    this hook runs, binding ``get_settings`` by name. Patching the manager
    class covers every binding, since ``get_settings`` always delegates
    to it. This prevents ValidationError on CI where .env is not available.
    """
    # Keep rotating log files out of the working tree
    os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="esmero-logs-"))

    from core.constants import _SettingsManager

    mock_settings = _build_mock_settings()

    cfg: Any = config
    cfg._mock_settings = mock_settings

    patcher = patch.object(_SettingsManager, "get", return_value=mock_settings)
    patcher.start()
    cfg._settings_patcher = patcher


def pytest_unconfigure(config: pytest.Config) -> None:
    """Clean up settings mock after all tests complete."""
    patcher = getattr(config, "_settings_patcher", None)
    if patcher:
        patcher.stop()


# ============================================================================
# Test Isolation: Settings Management
# ============================================================================


@pytest.fixture(autouse=True)
def reset_settings_singleton() -> Generator[None, None, None]:
    """Reset settings singleton before each test to prevent state pollution."""
    from core.constants import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_settings(request: pytest.FixtureRequest) -> MagicMock:
    """The settings mock installed by pytest_configure."""
    settings: MagicMock = request.config._mock_settings  # type: ignore[attr-defined]
    return settings


# ============================================================================
# Completion Provider Fakes
# ============================================================================


class FakeCompletionClient:
    """Stands in for StructuredCompletionClient.

    ``complete`` and ``complete_text`` are AsyncMocks; ``stream`` replays
    ``deltas`` and optionally raises ``stream_error`` afterwards. ``yielded``
    counts deltas handed out so far.
    """

    def __init__(self, deltas: list[str] | None = None) -> None:
        self.complete = AsyncMock()
        self.complete_text = AsyncMock(return_value="Generated Title")
        self.deltas = deltas or []
        self.stream_error: Exception | None = None
        self.stream_calls: list[dict[str, Any]] = []
        self.yielded = 0

    async def stream(self, context: Any, schema: Any, config: Any = None, **kwargs: Any) -> AsyncIterator[str]:
        self.stream_calls.append({"context": context, "schema": schema, "config": config, **kwargs})
        for delta in self.deltas:
            self.yielded += 1
            yield delta
        if self.stream_error is not None:
            raise self.stream_error


@pytest.fixture
def fake_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """Mock AsyncOpenAI client for testing."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


# ============================================================================
# Request Data Builders
# ============================================================================


@pytest.fixture
def make_messages() -> Any:
    """Factory for alternating user/agent messages one minute apart."""
    from models.agent_models import Message

    def _make(count: int, start_ms: int = 1_700_000_000_000) -> list[Message]:
        return [
            Message(
                id=f"m{i}",
                role="user" if i % 2 == 0 else "agent",
                content=f"message {i}",
                timestamp=start_ms + i * 60_000,
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_request() -> Any:
    """Factory for AgentRequest with sensible defaults."""
    from models.agent_models import AgentRequest

    def _make(**overrides: Any) -> AgentRequest:
        data: dict[str, Any] = {"user_message": "Tighten the intro", "canvas_content": "<p>Hello world</p>"}
        data.update(overrides)
        return AgentRequest(**data)

    return _make

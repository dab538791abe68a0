"""Fixtures for API-layer tests: a v1 app wired to fake services.

Application modules are imported inside the fixtures so that loading this
conftest never runs ahead of the root ``pytest_configure`` hook.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def app(fake_client: Any, mock_settings: MagicMock) -> FastAPI:
    from api.dependencies import get_app_settings, get_completion_client
    from api.middleware.exception_handlers import register_exception_handlers
    from api.middleware.request_context import RequestContextMiddleware
    from api.routes.v1 import router as v1_router

    app = FastAPI()
    register_exception_handlers(app)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(v1_router, prefix="/api/v1")

    app.state.completion_client = fake_client
    app.dependency_overrides[get_completion_client] = lambda: fake_client
    app.dependency_overrides[get_app_settings] = lambda: mock_settings

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)

from unittest.mock import MagicMock

import httpx
import pytest

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from openai import AuthenticationError, RateLimitError
from pydantic import BaseModel

from api.middleware.exception_handlers import (
    AppException,
    ExternalServiceError,
    ValidationException,
    register_exception_handlers,
)
from integrations.completion_client import CompletionProviderError, StructuredOutputError
from models.error_models import ErrorCode, ErrorDetail


@pytest.fixture
def test_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    # raise_server_exceptions=False ensures that we get the 500 response
    # instead of the client re-raising the exception.
    return TestClient(test_app, raise_server_exceptions=False)


def _openai_response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "https://api.test/v1/chat/completions"))


def test_app_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/app_error")
    def raise_app_error() -> None:
        raise AppException(code=ErrorCode.INTERNAL_ERROR, message="Test error", details={"foo": "bar"})

    response = client.get("/app_error")
    assert response.status_code == 500
    data = response.json()["error"]
    assert data["code"] == ErrorCode.INTERNAL_ERROR.value
    assert data["message"] == "Test error"
    assert data["details"] == [{"field": "foo", "message": "bar"}]
    assert data["path"] == "/app_error"


def test_configuration_error(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/no_client")
    def raise_config_error() -> None:
        raise AppException(code=ErrorCode.INTERNAL_CONFIGURATION_ERROR, message="Completion client not initialized")

    response = client.get("/no_client")
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INT_9002"


def test_validation_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/validation")
    def raise_validation() -> None:
        raise ValidationException(
            message="Content is required",
            errors=[ErrorDetail(field="content", message="Content must not be blank")],
        )

    response = client.get("/validation")
    assert response.status_code == 422
    data = response.json()["error"]
    assert data["code"] == ErrorCode.VALIDATION_ERROR.value
    assert data["details"] == [{"field": "content", "message": "Content must not be blank"}]


def test_http_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/missing")
    def raise_http() -> None:
        raise HTTPException(status_code=404, detail="Nope")

    response = client.get("/missing")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == ErrorCode.RESOURCE_NOT_FOUND.value


def test_request_validation_error(test_app: FastAPI, client: TestClient) -> None:
    class Body(BaseModel):
        name: str

    @test_app.post("/body")
    def accept(body: Body) -> dict[str, str]:
        return {"name": body.name}

    response = client.post("/body", json={})
    assert response.status_code == 422
    data = response.json()["error"]
    assert data["message"] == "Request validation failed"
    assert data["details"][0]["field"] == "body.name"
    assert data["details"][0]["code"] == "missing"


def test_pydantic_validation_error(test_app: FastAPI, client: TestClient) -> None:
    class Model(BaseModel):
        count: int

    @test_app.get("/pydantic")
    def raise_pydantic() -> None:
        Model.model_validate({"count": "many"})

    response = client.get("/pydantic")
    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Data validation failed"


def test_openai_auth_error(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/openai_auth")
    def raise_auth() -> None:
        raise AuthenticationError("bad key", response=_openai_response(401), body=None)

    response = client.get("/openai_auth")
    assert response.status_code == 502
    assert response.json()["error"]["code"] == ErrorCode.OPENAI_AUTH_FAILED.value


def test_openai_rate_limit(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/openai_rate")
    def raise_rate() -> None:
        raise RateLimitError("slow down", response=_openai_response(429), body=None)

    response = client.get("/openai_rate")
    assert response.status_code == 429
    assert response.json()["error"]["code"] == ErrorCode.EXTERNAL_RATE_LIMITED.value


def test_generic_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/boom")
    def raise_generic() -> None:
        raise RuntimeError("kaboom")

    response = client.get("/boom")
    assert response.status_code == 500
    data = response.json()["error"]
    assert data["code"] == ErrorCode.INTERNAL_UNEXPECTED.value
    assert "kaboom" not in data["message"]
    assert "debug" not in data


def test_debug_info_included_when_debug(test_app: FastAPI, client: TestClient, mock_settings: MagicMock) -> None:
    @test_app.get("/boom_debug")
    def raise_generic() -> None:
        raise RuntimeError("kaboom")

    mock_settings.debug = True
    try:
        response = client.get("/boom_debug")
    finally:
        mock_settings.debug = False

    data = response.json()["error"]
    assert data["debug"]["exception_type"] == "RuntimeError"
    assert data["debug"]["exception_message"] == "kaboom"


def test_completion_provider_error(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/provider")
    def raise_provider() -> None:
        raise CompletionProviderError("APIConnectionError: Connection error.")

    response = client.get("/provider")
    assert response.status_code == 502
    data = response.json()["error"]
    assert data["code"] == ErrorCode.EXTERNAL_SERVICE_ERROR.value
    assert data["message"] == "completion: Provider request failed"
    assert data["details"] == [{"field": "service", "message": "completion"}]


def test_structured_output_error(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/schema")
    def raise_schema() -> None:
        raise StructuredOutputError("AgentLLMResponse validation failed", raw="{}")

    response = client.get("/schema")
    assert response.status_code == 502
    assert response.json()["error"]["code"] == ErrorCode.AGENT_RESPONSE_INVALID.value


def test_external_service_error_message() -> None:
    error = ExternalServiceError("completion", "down")
    assert error.message == "completion: down"
    assert error.code == ErrorCode.EXTERNAL_SERVICE_ERROR

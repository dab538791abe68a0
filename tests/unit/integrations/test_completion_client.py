from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from openai import APIConnectionError

from core.cancellation import CancellationToken
from integrations.completion_client import (
    CompletionProviderError,
    StructuredCompletionClient,
    StructuredOutputError,
    ValidationFailure,
    ValidResponse,
    build_response_format,
    validate_structured,
)
from models.agent_models import AgentLLMResponse, DocumentRelevance
from models.context_models import LLMConfig, LLMContext

PROMPT = LLMContext(system_prompt="system", user_prompt="user")


def _response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _event(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    """Async iterable mimicking openai.AsyncStream."""

    def __init__(self, events: list[Any], error: Exception | None = None) -> None:
        self.events = events
        self.error = error
        self.close = AsyncMock()

    def __aiter__(self) -> FakeStream:
        self._iter = iter(self.events)
        return self

    async def __anext__(self) -> Any:
        try:
            return next(self._iter)
        except StopIteration:
            if self.error is not None:
                raise self.error from None
            raise StopAsyncIteration from None


def _connection_error() -> APIConnectionError:
    return APIConnectionError(request=httpx.Request("POST", "https://api.test/v1/chat/completions"))


@pytest.fixture
def client(mock_openai_client: MagicMock) -> StructuredCompletionClient:
    return StructuredCompletionClient(
        mock_openai_client,
        LLMConfig(model="gpt-default", temperature=0.3, top_p=1.0, max_tokens=2000, timeout=60.0),
    )


class TestValidateStructured:
    def test_valid(self) -> None:
        result = validate_structured('{"relevantDocumentIds": ["a"]}', DocumentRelevance)
        assert isinstance(result, ValidResponse)
        assert result.value.relevantDocumentIds == ["a"]

    def test_invalid_json(self) -> None:
        result = validate_structured('{"relevantDocumentIds": [', DocumentRelevance)
        assert isinstance(result, ValidationFailure)
        assert result.raw == '{"relevantDocumentIds": ['

    def test_schema_mismatch(self) -> None:
        result = validate_structured('{"response": "hi"}', AgentLLMResponse)
        assert isinstance(result, ValidationFailure)


def test_build_response_format() -> None:
    response_format = build_response_format(DocumentRelevance)

    assert response_format["type"] == "json_schema"
    json_schema = response_format["json_schema"]
    assert json_schema["name"] == "document_relevance"
    assert json_schema["strict"] is False
    assert "relevantDocumentIds" in json_schema["schema"]["properties"]
    assert "title" not in json_schema["schema"]


def test_merge_config_overrides_only_set_fields(client: StructuredCompletionClient) -> None:
    merged = client.merge_config(LLMConfig(model="gpt-override", max_tokens=200))

    assert merged.model == "gpt-override"
    assert merged.max_tokens == 200
    assert merged.temperature == 0.3
    assert merged.timeout == 60.0
    assert client.defaults.model == "gpt-default"


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_validated_model(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.return_value = _response('{"relevantDocumentIds": ["d1"]}')

        result = await client.complete(PROMPT, DocumentRelevance, LLMConfig(temperature=0.1), name="document_relevance")

        assert result == DocumentRelevance(relevantDocumentIds=["d1"])
        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-default"
        assert kwargs["temperature"] == 0.1
        assert kwargs["timeout"] == 60.0
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["response_format"]["json_schema"]["name"] == "document_relevance"

    @pytest.mark.asyncio
    async def test_invalid_body_raises_structured_output_error(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.return_value = _response("not json")

        with pytest.raises(StructuredOutputError) as exc_info:
            await client.complete(PROMPT, DocumentRelevance)

        assert exc_info.value.raw == "not json"

    @pytest.mark.asyncio
    async def test_provider_failure_raises_provider_error(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.side_effect = _connection_error()

        with pytest.raises(CompletionProviderError, match="APIConnectionError"):
            await client.complete(PROMPT, DocumentRelevance)


class TestStream:
    @pytest.mark.asyncio
    async def test_yields_deltas_and_closes(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        stream = FakeStream([_event('{"reasoning": "r", '), _event(None), SimpleNamespace(choices=[]), _event('"response": "ok"}')])
        mock_openai_client.chat.completions.create.return_value = stream

        deltas = [delta async for delta in client.stream(PROMPT, AgentLLMResponse)]

        assert deltas == ['{"reasoning": "r", ', '"response": "ok"}']
        assert mock_openai_client.chat.completions.create.call_args.kwargs["stream"] is True
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_final_body_is_logged_not_raised(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.return_value = FakeStream([_event('{"response": ')])

        with patch("integrations.completion_client.logger") as mock_logger:
            deltas = [delta async for delta in client.stream(PROMPT, AgentLLMResponse)]

        assert deltas == ['{"response": ']
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_stops_when_cancelled(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        stream = FakeStream([_event("a"), _event("b"), _event("c")])
        mock_openai_client.chat.completions.create.return_value = stream
        token = CancellationToken()

        deltas: list[str] = []
        async for delta in client.stream(PROMPT, AgentLLMResponse, cancellation_token=token):
            deltas.append(delta)
            await token.cancel("client disconnected")

        assert deltas == ["a"]
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_failure_before_stream(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.side_effect = _connection_error()

        with pytest.raises(CompletionProviderError):
            async for _ in client.stream(PROMPT, AgentLLMResponse):
                pass

    @pytest.mark.asyncio
    async def test_interruption_mid_stream(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        stream = FakeStream([_event("partial")], error=_connection_error())
        mock_openai_client.chat.completions.create.return_value = stream

        deltas: list[str] = []
        with pytest.raises(CompletionProviderError, match="Stream interrupted"):
            async for delta in client.stream(PROMPT, AgentLLMResponse):
                deltas.append(delta)

        assert deltas == ["partial"]
        stream.close.assert_awaited_once()


class TestCompleteText:
    @pytest.mark.asyncio
    async def test_returns_content(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.return_value = _response("Whale Story")

        assert await client.complete_text(PROMPT, LLMConfig(max_tokens=20)) == "Whale Story"
        assert "response_format" not in mock_openai_client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_empty_content_is_empty_string(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.return_value = _response(None)
        assert await client.complete_text(PROMPT) == ""

    @pytest.mark.asyncio
    async def test_failure_returns_fallback(
        self, client: StructuredCompletionClient, mock_openai_client: MagicMock
    ) -> None:
        mock_openai_client.chat.completions.create.side_effect = _connection_error()
        assert await client.complete_text(PROMPT, fallback="Untitled") == "Untitled"


@pytest.mark.asyncio
async def test_close_closes_underlying_client(
    client: StructuredCompletionClient, mock_openai_client: MagicMock
) -> None:
    await client.close()
    mock_openai_client.close.assert_awaited_once()


def test_from_settings_builds_defaults(mock_settings: MagicMock) -> None:
    with patch("integrations.completion_client.create_client_from_settings") as factory:
        client = StructuredCompletionClient.from_settings(mock_settings)

    factory.assert_called_once_with(mock_settings)
    assert client.defaults.model == "gpt-test-default"
    assert client.defaults.timeout == 60.0

"""
Structured completion client for the OpenAI chat completions API.

One instance is created at startup around an AsyncOpenAI (or AsyncAzureOpenAI)
client and injected wherever completions are needed. Three call shapes:

- complete: one schema-constrained call, validated into a pydantic model
- stream: the same call streamed as raw JSON text deltas
- complete_text: plain text completion that never raises
"""

from __future__ import annotations

import re
import time

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from core.constants import APOLOGY_MESSAGE, Settings
from models.context_models import LLMConfig, LLMContext
from utils.client_factory import create_client_from_settings
from utils.logger import logger
from utils.metrics import llm_request_duration_seconds, llm_requests_total

if TYPE_CHECKING:
    from core.cancellation import CancellationToken

T = TypeVar("T", bound=BaseModel)

# Transport and API failures raised by the SDK
PROVIDER_ERRORS: tuple[type[Exception], ...] = (OpenAIError, httpx.HTTPError)


class CompletionError(Exception):
    """Base class for completion failures surfaced to callers."""


class CompletionProviderError(CompletionError):
    """The provider call failed (network, auth, rate limit, timeout)."""


class StructuredOutputError(CompletionError):
    """The provider answered but the body did not match the schema."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


@dataclass(frozen=True)
class ValidResponse(Generic[T]):
    value: T


@dataclass(frozen=True)
class ValidationFailure:
    message: str
    raw: str


def validate_structured(raw: str, schema: type[T]) -> ValidResponse[T] | ValidationFailure:
    """Parse and validate a JSON body against ``schema`` without raising."""
    try:
        return ValidResponse(schema.model_validate_json(raw))
    except ValidationError as e:
        return ValidationFailure(message=str(e), raw=raw)


def _schema_name(schema: type[BaseModel]) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", schema.__name__).lower()


def build_response_format(schema: type[BaseModel], name: str | None = None, description: str | None = None) -> dict[str, Any]:
    """JSON schema response format for ``chat.completions.create``."""
    json_schema = schema.model_json_schema()
    json_schema.pop("title", None)
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name or _schema_name(schema),
            "description": description or (schema.__doc__ or "").strip(),
            "schema": json_schema,
            "strict": False,
        },
    }


def _messages(context: LLMContext) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": context.system_prompt},
        {"role": "user", "content": context.user_prompt},
    ]


class StructuredCompletionClient:
    """Schema-constrained completions over an injected AsyncOpenAI client."""

    def __init__(self, client: AsyncOpenAI, defaults: LLMConfig | None = None):
        self.client = client
        self.defaults = defaults or LLMConfig()

    @classmethod
    def from_settings(cls, settings: Settings) -> StructuredCompletionClient:
        defaults = LLMConfig(
            model=settings.default_model,
            temperature=settings.default_temperature,
            top_p=settings.default_top_p,
            max_tokens=settings.default_max_tokens,
            timeout=settings.llm_timeout,
        )
        return cls(create_client_from_settings(settings), defaults)

    def merge_config(self, config: LLMConfig | None) -> LLMConfig:
        """Caller overrides on top of client defaults."""
        return self.defaults.merge(config)

    async def close(self) -> None:
        await self.client.close()

    async def complete(
        self,
        context: LLMContext,
        schema: type[T],
        config: LLMConfig | None = None,
        *,
        name: str | None = None,
        description: str | None = None,
        purpose: str = "agent",
    ) -> T:
        """Run one structured completion and return the validated model.

        Raises:
            CompletionProviderError: The provider call failed.
            StructuredOutputError: The response did not validate against ``schema``.
        """
        merged = self.merge_config(config)
        start = time.perf_counter()

        try:
            response = await self.client.chat.completions.create(
                messages=_messages(context),
                response_format=build_response_format(schema, name, description),
                **merged.to_request_kwargs(),
            )
        except PROVIDER_ERRORS as e:
            llm_requests_total.labels(purpose=purpose, status="provider_error").inc()
            raise CompletionProviderError(f"{type(e).__name__}: {e}") from e
        finally:
            llm_request_duration_seconds.labels(purpose=purpose).observe(time.perf_counter() - start)

        raw = (response.choices[0].message.content if response.choices else None) or "{}"
        result = validate_structured(raw, schema)
        if isinstance(result, ValidationFailure):
            llm_requests_total.labels(purpose=purpose, status="invalid").inc()
            raise StructuredOutputError(f"{schema.__name__} validation failed: {result.message}", raw=raw)

        llm_requests_total.labels(purpose=purpose, status="ok").inc()
        return result.value

    async def stream(
        self,
        context: LLMContext,
        schema: type[BaseModel],
        config: LLMConfig | None = None,
        *,
        name: str | None = None,
        description: str | None = None,
        purpose: str = "agent",
        cancellation_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Yield raw text deltas of a structured completion.

        The accumulated body is validated once after the provider finishes,
        for logging and metrics only; nothing further is yielded.

        Raises:
            CompletionProviderError: The provider call failed before or during streaming.
        """
        merged = self.merge_config(config)
        start = time.perf_counter()

        try:
            stream = await self.client.chat.completions.create(
                messages=_messages(context),
                response_format=build_response_format(schema, name, description),
                stream=True,
                **merged.to_request_kwargs(),
            )
        except PROVIDER_ERRORS as e:
            llm_requests_total.labels(purpose=purpose, status="provider_error").inc()
            raise CompletionProviderError(f"{type(e).__name__}: {e}") from e

        parts: list[str] = []
        cancelled = False
        try:
            async for event in stream:
                if cancellation_token is not None and cancellation_token.is_cancelled:
                    cancelled = True
                    break
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    yield delta
        except PROVIDER_ERRORS as e:
            llm_requests_total.labels(purpose=purpose, status="provider_error").inc()
            raise CompletionProviderError(f"Stream interrupted: {type(e).__name__}: {e}") from e
        finally:
            await stream.close()
            llm_request_duration_seconds.labels(purpose=purpose).observe(time.perf_counter() - start)

        if cancelled:
            reason = cancellation_token.cancel_reason if cancellation_token else None
            logger.info(f"Completion stream cancelled: {reason or 'no reason given'}", chars=sum(map(len, parts)))
            llm_requests_total.labels(purpose=purpose, status="cancelled").inc()
            return

        result = validate_structured("".join(parts), schema)
        if isinstance(result, ValidationFailure):
            logger.warning(f"Streamed {schema.__name__} failed validation: {result.message}")
            llm_requests_total.labels(purpose=purpose, status="invalid").inc()
        else:
            llm_requests_total.labels(purpose=purpose, status="ok").inc()

    async def complete_text(
        self,
        context: LLMContext,
        config: LLMConfig | None = None,
        *,
        fallback: str = APOLOGY_MESSAGE,
        purpose: str = "text",
    ) -> str:
        """Plain text completion. Any failure returns ``fallback``."""
        merged = self.merge_config(config)
        start = time.perf_counter()

        try:
            response = await self.client.chat.completions.create(
                messages=_messages(context),
                **merged.to_request_kwargs(),
            )
            content = response.choices[0].message.content if response.choices else None
        except Exception as e:
            logger.error(f"Text completion failed: {e}", purpose=purpose)
            llm_requests_total.labels(purpose=purpose, status="provider_error").inc()
            return fallback
        finally:
            llm_request_duration_seconds.labels(purpose=purpose).observe(time.perf_counter() - start)

        llm_requests_total.labels(purpose=purpose, status="ok").inc()
        return content or ""

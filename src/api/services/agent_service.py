from __future__ import annotations

import time

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from core.chunk_extractor import ArrayScanChunkExtractor, ChunkExtractor
from core.constants import (
    AGENT_MAX_TOKENS,
    AGENT_STREAM_MAX_TOKENS,
    AGENT_TEMPERATURE,
    HANDLER_ERROR_MESSAGE,
    HANDLER_ERROR_REASONING,
    STREAM_INTERNAL_ERROR,
    STREAM_PARSE_ERROR,
    get_settings,
)
from core.context import ContextAssembler, RelevanceFilter
from core.prompts import build_prompts
from integrations.completion_client import (
    StructuredCompletionClient,
    ValidationFailure,
    validate_structured,
)
from models.agent_models import (
    AgentExecutionResult,
    AgentLLMResponse,
    AgentRequest,
    ChunkEvent,
    Diff,
    DiffChunk,
    DoneEvent,
    ErrorEvent,
    LLMDiff,
    Message,
    MessageEvent,
    StreamEvent,
)
from models.context_models import LLMConfig
from utils.logger import logger
from utils.metrics import agent_requests_total, stream_chunks_emitted_total

if TYPE_CHECKING:
    from core.cancellation import CancellationToken

AGENT_SCHEMA_NAME = "agent_response"
AGENT_SCHEMA_DESCRIPTION = "Structured response from the writing assistant"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _chunk_id(timestamp_ms: int, index: int) -> str:
    return f"chunk-{timestamp_ms}-{index}"


def _to_diff(diff: LLMDiff | None) -> Diff | None:
    if diff is None:
        return None
    now = _now_ms()
    return Diff(
        chunks=[
            DiffChunk(
                id=_chunk_id(now, index),
                old_text=chunk.oldText,
                new_text=chunk.newText,
                explanation=chunk.explanation,
            )
            for index, chunk in enumerate(diff.chunks)
        ],
        explanation=diff.explanation,
    )


def _to_stream_chunk(raw: Any, index: int) -> DiffChunk | None:
    """Build a chunk from one extracted array element; the element's own id wins."""
    if not isinstance(raw, dict):
        return None
    try:
        return DiffChunk.model_validate({"id": _chunk_id(_now_ms(), index), **raw})
    except ValidationError:
        return None


class AgentService:
    """Writing assistant orchestration: context, prompts, completion.

    The caller sends prior history only; the current user turn is appended
    here before context assembly on both the atomic and streaming paths.
    """

    def __init__(
        self,
        client: StructuredCompletionClient,
        assembler: ContextAssembler | None = None,
        extractor: ChunkExtractor | None = None,
        model: str | None = None,
    ):
        self.client = client
        self.assembler = assembler or ContextAssembler(RelevanceFilter(client))
        self.extractor = extractor or ArrayScanChunkExtractor()
        self.model = model

    def _config(self, max_tokens: int) -> LLMConfig:
        model = self.model
        if model is None:
            model = get_settings().agent_model
        return LLMConfig(model=model, temperature=AGENT_TEMPERATURE, max_tokens=max_tokens)

    def with_current_turn(self, request: AgentRequest) -> AgentRequest:
        """Return a copy of the request whose history ends with the current user message."""
        now = _now_ms()
        current = Message(id=f"user-{now}", role="user", content=request.user_message, timestamp=now)
        return request.model_copy(update={"conversation_history": [*request.conversation_history, current]})

    async def handle(self, request: AgentRequest) -> AgentExecutionResult:
        """Atomic path. Never raises; any failure yields the fixed fallback result."""
        start = time.perf_counter()
        logger.info(
            "Agent request received",
            has_selection=bool(request.selected_text),
            document_id=request.current_document_id,
            documents=len(request.documents),
        )

        try:
            context = await self.assembler.assemble(self.with_current_turn(request))
            answer = await self.client.complete(
                build_prompts(context),
                AgentLLMResponse,
                self._config(AGENT_MAX_TOKENS),
                name=AGENT_SCHEMA_NAME,
                description=AGENT_SCHEMA_DESCRIPTION,
            )
        except Exception as e:
            logger.error(f"Agent handler error: {e}", exc_info=True)
            agent_requests_total.labels(mode="atomic", status="error").inc()
            return AgentExecutionResult(
                response=HANDLER_ERROR_MESSAGE,
                diff=None,
                reasoning=HANDLER_ERROR_REASONING,
            )

        result = AgentExecutionResult(
            response=answer.response,
            diff=_to_diff(answer.diff),
            reasoning=answer.reasoning,
        )

        agent_requests_total.labels(mode="atomic", status="ok").inc()
        logger.log_agent_turn(
            user_message=request.user_message,
            response=result.response,
            chunk_count=len(result.diff.chunks) if result.diff else 0,
            streamed=False,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return result

    async def stream(
        self,
        request: AgentRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Streaming path.

        Yields zero or more chunk events as diff chunks complete, then either
        a message event followed by done, or a single error event. No retry
        once the provider stream has started.
        """
        start = time.perf_counter()
        accumulated = ""
        extracted = 0

        try:
            context = await self.assembler.assemble(self.with_current_turn(request))
            deltas = self.client.stream(
                build_prompts(context),
                AgentLLMResponse,
                self._config(AGENT_STREAM_MAX_TOKENS),
                name=AGENT_SCHEMA_NAME,
                description=AGENT_SCHEMA_DESCRIPTION,
                cancellation_token=cancellation_token,
            )

            async for delta in deltas:
                accumulated += delta

                extraction = self.extractor.extract(accumulated, extracted)
                for raw in extraction.chunks:
                    chunk = _to_stream_chunk(raw, extracted)
                    extracted += 1
                    if chunk is None:
                        logger.warning("Skipping malformed diff chunk", index=extracted - 1)
                        continue
                    stream_chunks_emitted_total.inc()
                    yield ChunkEvent(chunk=chunk)

        except Exception as e:
            logger.error(f"Streaming agent error: {e}", exc_info=True)
            agent_requests_total.labels(mode="stream", status="error").inc()
            yield ErrorEvent(error=STREAM_INTERNAL_ERROR)
            return

        if cancellation_token is not None and cancellation_token.is_cancelled:
            logger.info("Agent stream cancelled", chunks=extracted, reason=cancellation_token.cancel_reason)
            agent_requests_total.labels(mode="stream", status="cancelled").inc()
            return

        final = validate_structured(accumulated, AgentLLMResponse)
        if isinstance(final, ValidationFailure):
            logger.error(f"Failed to parse final agent response: {final.message}")
            agent_requests_total.labels(mode="stream", status="error").inc()
            yield ErrorEvent(error=STREAM_PARSE_ERROR)
            return

        agent_requests_total.labels(mode="stream", status="ok").inc()
        logger.log_agent_turn(
            user_message=request.user_message,
            response=final.value.response,
            chunk_count=extracted,
            streamed=True,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

        yield MessageEvent(message=final.value.response, reasoning=final.value.reasoning)
        yield DoneEvent()

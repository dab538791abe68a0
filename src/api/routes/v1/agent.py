"""
Writing assistant endpoints.

POST /agent returns one complete response. POST /agent/stream returns the
same response as server-sent events, emitting each diff chunk as soon as it
is complete.
"""

from __future__ import annotations

import asyncio
import contextlib

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from api.dependencies import Agent
from api.middleware.request_context import update_request_context
from core.cancellation import CancellationToken
from models.agent_models import AgentRequest, AgentResponse
from utils.json_utils import json_compact
from utils.logger import logger

router = APIRouter()

# How often the SSE route checks for a disconnected client (seconds)
DISCONNECT_POLL_INTERVAL = 0.5

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(payload: dict[str, object]) -> str:
    """One server-sent event frame."""
    return f"data: {json_compact(payload)}\n\n"


async def _watch_disconnect(request: Request, token: CancellationToken, stop: asyncio.Event) -> None:
    while not (token.is_cancelled or stop.is_set()):
        if await request.is_disconnected():
            await token.cancel("client disconnected")
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop.wait(), DISCONNECT_POLL_INTERVAL)


@router.post("/agent", response_model=AgentResponse, response_model_by_alias=True)
async def run_agent(body: AgentRequest, agent: Agent) -> AgentResponse:
    """Run the writing assistant once and return message, diff and reasoning."""
    update_request_context(document_id=body.current_document_id)
    result = await agent.handle(body)
    return AgentResponse.from_result(result)


@router.post("/agent/stream")
async def stream_agent(body: AgentRequest, request: Request, agent: Agent) -> StreamingResponse:
    """Stream the writing assistant response as SSE frames."""
    update_request_context(document_id=body.current_document_id, streamed=True)
    token = CancellationToken()

    async def event_source() -> AsyncIterator[str]:
        stop = asyncio.Event()
        watcher = asyncio.create_task(_watch_disconnect(request, token, stop))
        try:
            async for event in agent.stream(body, cancellation_token=token):
                yield format_sse(event.to_wire())
        finally:
            # is_disconnected() may absorb the cancel; the stop flag still ends the watcher
            stop.set()
            watcher.cancel()
            await asyncio.wait({watcher}, timeout=DISCONNECT_POLL_INTERVAL * 2)
            if token.is_cancelled:
                logger.info("SSE client disconnected before completion")

    return StreamingResponse(event_source(), media_type="text/event-stream", headers=SSE_HEADERS)

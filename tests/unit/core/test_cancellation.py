from __future__ import annotations

import asyncio

import pytest

from core.cancellation import CancellationToken


@pytest.mark.asyncio
async def test_cancel_sets_state_and_reason() -> None:
    token = CancellationToken()
    assert not token.is_cancelled
    assert token.cancel_reason is None

    await token.cancel("client disconnected")

    assert token.is_cancelled
    assert token.cancel_reason == "client disconnected"


@pytest.mark.asyncio
async def test_first_reason_wins() -> None:
    token = CancellationToken()
    await token.cancel("first")
    await token.cancel("second")
    assert token.cancel_reason == "first"


@pytest.mark.asyncio
async def test_wait_for_cancellation_times_out() -> None:
    assert await CancellationToken().wait_for_cancellation(timeout=0.01) is False


@pytest.mark.asyncio
async def test_wait_for_cancellation_wakes_on_cancel() -> None:
    token = CancellationToken()
    waiter = asyncio.create_task(token.wait_for_cancellation(timeout=1.0))
    await asyncio.sleep(0)
    await token.cancel()
    assert await waiter is True

"""
Cancellation token for cooperative stream cancellation.

The SSE route cancels the token when the client disconnects; the agent
stream checks it between provider deltas and stops consuming.
"""

from __future__ import annotations

import asyncio


class CancellationToken:
    """Cooperative cancellation token backed by asyncio.Event.

    Usage:
        token = CancellationToken()

        # In producer/controller:
        await token.cancel("client disconnected")

        # In consumer/worker:
        async for delta in stream:
            if token.is_cancelled:
                break
    """

    __slots__ = ("_cancel_reason", "_cancelled")

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()
        self._cancel_reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled.is_set()

    @property
    def cancel_reason(self) -> str | None:
        """Get the reason for cancellation, if any."""
        return self._cancel_reason

    async def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Later calls keep the first reason."""
        if self._cancelled.is_set():
            return
        self._cancel_reason = reason
        self._cancelled.set()

    async def wait_for_cancellation(self, timeout: float | None = None) -> bool:
        """Wait for cancellation to be requested.

        Returns:
            True if cancelled, False if timeout expired
        """
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

"""
Cooperative cancellation for the processor loop and handlers.

The token is checked between processor cycles; a cycle already running is
allowed to finish. Handlers receive the same token and may use it to cut
short their own long waits.
"""

import asyncio


class CancellationToken:
    """Set-once cancellation signal shared by a worker and its handlers."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self, timeout: float | None = None) -> bool:
        """
        Sleep until cancelled or until timeout elapses.

        Returns:
            True if the token was cancelled, False on timeout
        """
        if self._event.is_set():
            return True
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

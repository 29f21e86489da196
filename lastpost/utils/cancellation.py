"""Cooperative cancellation for a checking session.

A CancelToken is a one-shot flag threaded through every suspending call.
Waits that accept a token return early once it is signalled, so the
controller observes a stop request at the next suspension boundary.
"""

import asyncio
from typing import Optional

import structlog

logger = structlog.get_logger()


class CancelToken:
    """One-shot, idempotent cancellation signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "user_requested") -> None:
        """Signal cancellation. Calling this again has no further effect."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.info("cancellation_requested", reason=reason)

    async def wait(self) -> None:
        """Block until cancellation is signalled."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless cancelled first.

        Returns:
            True if the full delay elapsed, False if cancellation cut it short
        """
        if self.cancelled:
            return False
        if seconds <= 0:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False

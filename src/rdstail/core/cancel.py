"""Cooperative cancellation shared by the tail and download drivers."""

from __future__ import annotations

import asyncio

from rdstail.core.errors import Cancelled


class CancelToken:
    """One-shot cancellation signal with an interruptible sleep.

    Cancellation is observed at loop-iteration boundaries and while
    sleeping; an in-flight remote call is allowed to finish.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "signal triggered exit") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self.reason or "signal triggered exit")

    async def sleep(self, seconds: float) -> None:
        """Sleep up to `seconds`, raising `Cancelled` as soon as the token fires."""
        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
        else:
            # still yield so a pending cancel() from another task can land
            await asyncio.sleep(0)
        self.raise_if_cancelled()

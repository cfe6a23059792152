# ============================================================================
# CANCELLATION TOKEN
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Cooperative cancellation
# PURPOSE: Stop signal threaded through loop, engine and scheduler
# CREATED: 17 OCT 2026
# ============================================================================
"""
Cancellation Token

Cancellation is cooperative and phase-granular: the token is checked
between phases and between batches, never inside an in-flight phase.
Pause and cancel set the same token; they differ only in what the caller
persists afterwards.
"""

import asyncio
from typing import Optional


class CancellationToken:
    """One-shot stop signal for a job runner."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation. The first reason wins."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep up to `seconds`, waking early if cancelled.

        Returns:
            True if the token was cancelled
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return self.is_cancelled

    def __repr__(self) -> str:
        state = f"cancelled:{self._reason}" if self.is_cancelled else "active"
        return f"<CancellationToken {state}>"


__all__ = ["CancellationToken"]

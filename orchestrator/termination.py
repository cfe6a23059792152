# ============================================================================
# TERMINATION POLICY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Stop conditions for the cycle loop
# PURPOSE: Decide whether a job should stop looping
# CREATED: 17 OCT 2026
# ============================================================================
"""
Termination Policy

Pure evaluation over a loaded Job, checked at the top of every loop
iteration:

1. max_cycles set and current_cycle >= max_cycles -> max_cycles_reached
2. time_limit_minutes set, started_at set and elapsed >= limit
   -> time_limit_reached
3. otherwise continue

Zero discovered tasks is the other normal stop, signalled by the engine.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from core.contracts import TerminationReason, utc_now
from core.models import Job


@dataclass(frozen=True)
class TerminationDecision:
    terminate: bool
    reason: Optional[TerminationReason] = None


CONTINUE = TerminationDecision(terminate=False)


def evaluate_termination(job: Job, now: Optional[datetime] = None) -> TerminationDecision:
    """Evaluate the stop conditions for a job; no side effects."""
    if job.max_cycles is not None and job.current_cycle >= job.max_cycles:
        return TerminationDecision(True, TerminationReason.MAX_CYCLES_REACHED)

    if job.time_limit_minutes is not None and job.started_at is not None:
        elapsed = job.elapsed_minutes(now or utc_now())
        if elapsed >= job.time_limit_minutes:
            return TerminationDecision(True, TerminationReason.TIME_LIMIT_REACHED)

    return CONTINUE


class TerminationPolicy:
    """evaluate_termination with an injectable clock."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def evaluate(self, job: Job) -> TerminationDecision:
        return evaluate_termination(job, self._clock())


__all__ = ["TerminationDecision", "TerminationPolicy", "evaluate_termination", "CONTINUE"]

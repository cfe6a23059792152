# ============================================================================
# ACTIVE RUNNER REGISTRY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Single source of truth for "is this job running here"
# PURPOSE: Enforce one runner per job id within this process
# CREATED: 17 OCT 2026
# ============================================================================
"""
Active Runner Registry

Maps job_id -> RunnerHandle (cancellation token + background task).

register() checks and inserts without awaiting, so on a single event loop
it is atomic with respect to other coroutines. The map lives in memory: a
process restart loses it, and any job still RUNNING in the store after a
crash is stale.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.errors import JobAlreadyRunningError
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class RunnerHandle:
    job_id: str
    token: CancellationToken
    task: Optional[asyncio.Task] = None

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class ActiveRunnerRegistry:
    """In-memory registry of job runners."""

    def __init__(self):
        self._runners: Dict[str, RunnerHandle] = {}

    def register(self, job_id: str, token: Optional[CancellationToken] = None) -> RunnerHandle:
        """
        Claim the job id.

        Raises:
            JobAlreadyRunningError: if a runner is already registered
        """
        if job_id in self._runners:
            raise JobAlreadyRunningError(job_id)
        handle = RunnerHandle(job_id=job_id, token=token or CancellationToken())
        self._runners[job_id] = handle
        return handle

    def attach(self, handle: RunnerHandle, task: asyncio.Task) -> None:
        """Bind the background task; it unregisters itself when done."""
        handle.task = task
        task.add_done_callback(lambda _: self.unregister(handle.job_id, handle))

    def is_active(self, job_id: str) -> bool:
        return job_id in self._runners

    def get(self, job_id: str) -> Optional[RunnerHandle]:
        return self._runners.get(job_id)

    def unregister(self, job_id: str, handle: Optional[RunnerHandle] = None) -> None:
        """
        Release the job id. With a handle, only that exact runner is removed,
        so a late callback never evicts a newer runner.
        """
        current = self._runners.get(job_id)
        if current is None:
            return
        if handle is not None and current is not handle:
            return
        del self._runners[job_id]
        logger.debug(f"Runner for job {job_id} unregistered")

    def active_job_ids(self) -> List[str]:
        return list(self._runners)

    def __len__(self) -> int:
        return len(self._runners)


__all__ = ["ActiveRunnerRegistry", "RunnerHandle"]

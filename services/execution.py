# ============================================================================
# TASK EXECUTION
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Service - Executor contract, registry and simulated backend
# PURPOSE: Perform the work for one task and report success or failure
# CREATED: 17 OCT 2026
# ============================================================================
"""
Task Execution

Executors are looked up by the job's provider tag. An executor signals
failure by raising; whatever it returns on success is recorded on the task.

Design:
- Registry is an instance (one per manager), not a module global
- Fail-fast on duplicate registration
- Progress goes through TaskExecutionContext.report_progress()
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.models import Job, Task, TaskExecutionResult

logger = logging.getLogger(__name__)


# ============================================================================
# CONTEXT
# ============================================================================

@dataclass
class TaskExecutionContext:
    """
    Everything an executor gets for one task run.
    """
    job: Job
    task: Task
    cycle_number: int
    credential: Optional[str] = None

    # Progress callback (optional)
    progress_callback: Optional[Callable[[str], None]] = None

    def report_progress(self, message: str) -> None:
        """Report progress if callback is available."""
        if self.progress_callback:
            self.progress_callback(message)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ExecutorError(Exception):
    """Base exception for executor lookup errors."""
    pass


class ExecutorNotFoundError(ExecutorError):
    """Raised when no executor is registered for a provider."""

    def __init__(self, provider: str, available: List[str]):
        self.provider = provider
        self.available = available
        super().__init__(
            f"No executor registered for provider '{provider}' "
            f"(available: {', '.join(available) or 'none'})"
        )


class DuplicateExecutorError(ExecutorError):
    """Raised when a provider name is already registered."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Executor already registered: {provider}")


# ============================================================================
# EXECUTORS
# ============================================================================

class TaskExecutor(ABC):
    """Performs the work for one task. Raise to fail the task."""

    @abstractmethod
    async def execute(self, ctx: TaskExecutionContext) -> Optional[TaskExecutionResult]:
        ...


class SimulatedTaskExecutor(TaskExecutor):
    """
    Stand-in backend that reports a few progress steps and succeeds.

    A real backend spawns an isolated coding-agent run in the job's
    workspace and reports the files it touched.
    """

    def __init__(self, step_count: int = 3, step_delay_seconds: float = 1.0):
        self.step_count = step_count
        self.step_delay_seconds = step_delay_seconds

    async def execute(self, ctx: TaskExecutionContext) -> TaskExecutionResult:
        for step in range(1, self.step_count + 1):
            await asyncio.sleep(self.step_delay_seconds)
            ctx.report_progress(f"Step {step}/{self.step_count}: Processing...")
        return TaskExecutionResult(result_summary=f"Completed: {ctx.task.description}")


class ExecutorRegistry:
    """Provider tag -> executor."""

    def __init__(self):
        self._executors: Dict[str, TaskExecutor] = {}

    def register(self, provider: str, executor: TaskExecutor) -> None:
        if provider in self._executors:
            raise DuplicateExecutorError(provider)
        self._executors[provider] = executor
        logger.debug(f"Registered executor for provider {provider}: {type(executor).__name__}")

    def get(self, provider: str) -> TaskExecutor:
        try:
            return self._executors[provider]
        except KeyError:
            raise ExecutorNotFoundError(provider, self.providers()) from None

    def providers(self) -> List[str]:
        return sorted(self._executors)

    def __contains__(self, provider: str) -> bool:
        return provider in self._executors


__all__ = [
    "TaskExecutionContext",
    "TaskExecutor",
    "SimulatedTaskExecutor",
    "ExecutorRegistry",
    "ExecutorError",
    "ExecutorNotFoundError",
    "DuplicateExecutorError",
]

# ============================================================================
# PARALLEL TASK SCHEDULER
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Bounded-parallel, batch-synchronous task execution
# PURPOSE: Partition a cycle's tasks into batches and run each to settlement
# CREATED: 17 OCT 2026
# ============================================================================
"""
Parallel Task Scheduler

Batching (tasks taken in task_number order):
1. Parallel-capable tasks are chunked into groups of <= max_parallel
2. Each sequential task is its own singleton batch
3. PARALLEL_FIRST: all parallel chunks, then the singletons
   TASK_NUMBER:    batches ordered by their first task's number

Execution: batches run strictly one after another. Within a batch every
task runs concurrently and the batch waits for all of them to settle. An
executor exception fails only its own task; store failures abort the
cycle once the batch has settled.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from core.config import BatchOrdering
from core.contracts import TaskStatus, utc_now
from core.logging import log_context
from core.models import Cycle, Job, Task, TaskExecutionResult
from services.broadcaster import as_safe_sink
from services.execution import ExecutorRegistry, TaskExecutionContext, TaskExecutor
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


def plan_batches(
    tasks: Sequence[Task],
    max_parallel: int,
    ordering: BatchOrdering = BatchOrdering.PARALLEL_FIRST,
) -> List[List[Task]]:
    """
    Partition tasks into ordered batches. Pure; does not touch the store.
    """
    if max_parallel < 1:
        raise ValueError("max_parallel must be >= 1")

    ordered = sorted(tasks, key=lambda t: t.task_number)
    parallel = [t for t in ordered if t.can_run_parallel]
    sequential = [t for t in ordered if not t.can_run_parallel]

    chunks = [parallel[i:i + max_parallel] for i in range(0, len(parallel), max_parallel)]
    singletons = [[t] for t in sequential]

    if ordering == BatchOrdering.TASK_NUMBER:
        return sorted(chunks + singletons, key=lambda batch: batch[0].task_number)
    return chunks + singletons


@dataclass
class ScheduleOutcome:
    batches_planned: int
    batches_run: int
    tasks_launched: int

    @property
    def interrupted(self) -> bool:
        return self.batches_run < self.batches_planned


class ParallelTaskScheduler:
    """Runs a cycle's tasks through the executor selected by job.provider."""

    def __init__(
        self,
        store,
        executors: ExecutorRegistry,
        events,
        ordering: BatchOrdering = BatchOrdering.PARALLEL_FIRST,
        execution_timeout_seconds: Optional[float] = None,
    ):
        self.store = store
        self.executors = executors
        self.events = as_safe_sink(events)
        self.ordering = ordering
        self.execution_timeout_seconds = execution_timeout_seconds

    async def run(
        self,
        job: Job,
        cycle: Cycle,
        tasks: Sequence[Task],
        token: CancellationToken,
        credential: Optional[str] = None,
    ) -> ScheduleOutcome:
        """
        Execute all batches, stopping between batches if cancelled.
        """
        batches = plan_batches(tasks, job.max_parallel_tasks, self.ordering)
        launched = 0
        batches_run = 0

        for index, batch in enumerate(batches, start=1):
            if token.is_cancelled:
                logger.info(
                    f"Cancellation observed before batch {index}/{len(batches)}; "
                    f"{len(batches) - batches_run} batches not started"
                )
                break

            logger.info(
                f"Batch {index}/{len(batches)}: tasks "
                f"{[t.task_number for t in batch]}"
            )

            for task in batch:
                await self._mark_running(job, cycle, task)

            launched += len(batch)
            await self.store.cycles.update(cycle.cycle_id, tasks_launched=launched)

            results = await asyncio.gather(
                *(self._run_task(job, cycle, task, credential) for task in batch),
                return_exceptions=True,
            )
            batches_run += 1

            # Executor errors never get here; anything left is a store failure
            for result in results:
                if isinstance(result, Exception):
                    raise result
            for task, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError) and task.status == TaskStatus.RUNNING:
                    await self._settle_failed(job, cycle, task, "Task cancelled")

        return ScheduleOutcome(
            batches_planned=len(batches),
            batches_run=batches_run,
            tasks_launched=launched,
        )

    async def _mark_running(self, job: Job, cycle: Cycle, task: Task) -> None:
        task.status = TaskStatus.RUNNING
        task.started_at = utc_now()
        await self.store.tasks.update(
            task.task_id, status=TaskStatus.RUNNING, started_at=task.started_at
        )
        self.events.broadcast_task_started(
            job.job_id, cycle.cycle_number, task.task_id, task.description
        )

    async def _invoke(self, executor: TaskExecutor, ctx: TaskExecutionContext) -> Optional[TaskExecutionResult]:
        if self.execution_timeout_seconds:
            return await asyncio.wait_for(executor.execute(ctx), timeout=self.execution_timeout_seconds)
        return await executor.execute(ctx)

    async def _run_task(
        self,
        job: Job,
        cycle: Cycle,
        task: Task,
        credential: Optional[str],
    ) -> None:
        """Run one task and persist its terminal state."""
        with log_context(task_id=task.task_id):
            ctx = TaskExecutionContext(
                job=job,
                task=task,
                cycle_number=cycle.cycle_number,
                credential=credential,
                progress_callback=lambda message: self.events.broadcast_task_progress(
                    job.job_id, cycle.cycle_number, task.task_id, message
                ),
            )

            try:
                executor = self.executors.get(job.provider)
                result = await self._invoke(executor, ctx)
            except asyncio.TimeoutError:
                await self._settle_failed(
                    job, cycle, task,
                    f"Task timed out after {self.execution_timeout_seconds}s",
                )
                return
            except asyncio.CancelledError:
                # Only a cancel aimed at this task propagates; one raised by the executor is a failure
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                logger.warning(f"Task {task.task_number} cancelled by its executor")
                await self._settle_failed(job, cycle, task, "Task cancelled by executor")
                return
            except Exception as e:
                logger.warning(f"Task {task.task_number} failed: {e}")
                await self._settle_failed(job, cycle, task, str(e) or type(e).__name__)
                return

            result = result or TaskExecutionResult()
            summary = result.result_summary or f"Completed: {task.description}"

            task.status = TaskStatus.COMPLETED
            task.completed_at = utc_now()
            task.result_summary = summary
            task.files_modified = list(result.files_modified)
            await self.store.tasks.update(
                task.task_id,
                status=TaskStatus.COMPLETED,
                completed_at=task.completed_at,
                result_summary=summary,
                files_modified=task.files_modified,
            )
            self.events.broadcast_task_completed(
                job.job_id, cycle.cycle_number, task.task_id, summary
            )
            logger.info(f"Task {task.task_number} completed")

    async def _settle_failed(self, job: Job, cycle: Cycle, task: Task, message: str) -> None:
        task.status = TaskStatus.FAILED
        task.completed_at = utc_now()
        task.error_message = message[:4000]
        await self.store.tasks.update(
            task.task_id,
            status=TaskStatus.FAILED,
            completed_at=task.completed_at,
            error_message=task.error_message,
        )
        self.events.broadcast_task_failed(
            job.job_id, cycle.cycle_number, task.task_id, task.error_message
        )


__all__ = ["plan_batches", "ParallelTaskScheduler", "ScheduleOutcome"]

# ============================================================================
# JOB LIFECYCLE MANAGER
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Public job operations and the per-job cycle loop
# PURPOSE: Create/start/pause/resume/cancel jobs and drive their cycles
# CREATED: 17 OCT 2026
# ============================================================================
"""
Job Lifecycle Manager

Public operations over jobs, plus the background cycle loop each started
job runs as its own asyncio task.

Cycle loop (per runner):
    1. Reload the job
    2. Evaluate the termination policy; complete the job if it fires
    3. Run cycle current_cycle + 1 through the CycleEngine
    4. Persist current_cycle = that number, whatever the outcome
    5. Zero tasks discovered -> complete with all_tasks_complete
    6. Cancelled -> exit without touching status (pause/cancel own it)
    7. Sleep the inter-cycle delay and repeat

Any exception escaping a cycle is fatal for the job: status=error,
last_error recorded, error_count incremented. There is no auto-retry.

started_at is stamped on the first start only, so time_limit_minutes
bounds total wall-clock time since then, paused time included.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from core.config import Defaults, get_defaults
from core.contracts import JobStatus, TerminationReason, utc_now
from core.errors import (
    CycleNotFoundError,
    InvalidJobConfigError,
    InvalidJobStateError,
    JobNotFoundError,
    JobNotRunningError,
    OrchestratorError,
)
from core.logging import log_checkpoint, log_context
from core.models import Cycle, Job, JobConfig, Task
from services.broadcaster import EventBroadcaster, as_safe_sink
from services.discovery import TaskDiscoverer
from services.execution import ExecutorRegistry
from services.planning import PlanUpdater
from services.workspace import RepositoryInspector
from .cancellation import CancellationToken
from .engine import CycleEngine
from .registry import ActiveRunnerRegistry
from .scheduler import ParallelTaskScheduler
from .termination import TerminationPolicy

logger = logging.getLogger(__name__)


@dataclass
class CycleWithTasks:
    cycle: Cycle
    tasks: List[Task] = field(default_factory=list)


@dataclass
class JobWithCycles:
    job: Job
    cycles: List[Cycle] = field(default_factory=list)


class JobLifecycleManager:
    """
    Owns the active-runner registry and every job state transition.

    One instance per process. Collaborators are injected so that tests and
    alternative backends can replace any of them.
    """

    def __init__(
        self,
        store,
        discoverer: TaskDiscoverer,
        planner: PlanUpdater,
        executors: ExecutorRegistry,
        events: Optional[EventBroadcaster] = None,
        registry: Optional[ActiveRunnerRegistry] = None,
        inspector: Optional[RepositoryInspector] = None,
        policy: Optional[TerminationPolicy] = None,
        defaults: Optional[Defaults] = None,
    ):
        self.store = store
        self.defaults = defaults or get_defaults()
        self.broadcaster = events if events is not None else EventBroadcaster()
        self.events = as_safe_sink(self.broadcaster)
        self.registry = registry or ActiveRunnerRegistry()
        self.policy = policy or TerminationPolicy()

        collab = self.defaults.collaborators
        self.scheduler = ParallelTaskScheduler(
            store,
            executors,
            self.events,
            ordering=self.defaults.orchestrator.batch_ordering,
            execution_timeout_seconds=collab.execution_timeout_seconds,
        )
        self.engine = CycleEngine(
            store,
            discoverer,
            planner,
            self.scheduler,
            self.events,
            inspector=inspector,
            discovery_timeout_seconds=collab.discovery_timeout_seconds,
            planning_timeout_seconds=collab.planning_timeout_seconds,
        )

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_job(self, owner_id: str, config: Union[JobConfig, Dict[str, Any]]) -> Job:
        """
        Validate config and persist a PENDING job. Does not start it.

        Raises:
            InvalidJobConfigError: missing or invalid fields
        """
        if not owner_id or not owner_id.strip():
            raise InvalidJobConfigError("owner_id is required")

        if not isinstance(config, JobConfig):
            try:
                config = JobConfig.model_validate(config or {})
            except ValidationError as e:
                raise InvalidJobConfigError(str(e)) from e

        orch = self.defaults.orchestrator
        job_id = uuid.uuid4().hex
        working_branch = config.working_branch or f"{orch.working_branch_prefix}{job_id[:8]}"
        session_path = orch.session_path_separator.join([
            config.repository_owner,
            config.repository_name,
            working_branch.replace("/", "-"),
        ])

        job = Job(
            job_id=job_id,
            owner_id=owner_id,
            repository_owner=config.repository_owner,
            repository_name=config.repository_name,
            base_branch=config.base_branch,
            working_branch=working_branch,
            session_path=session_path,
            request_document=config.request_document,
            task_list=config.initial_task_list,
            status=JobStatus.PENDING,
            current_cycle=0,
            max_cycles=config.max_cycles,
            time_limit_minutes=config.time_limit_minutes,
            max_parallel_tasks=config.max_parallel_tasks or orch.default_max_parallel_tasks,
            provider=config.provider or orch.default_provider,
        )
        await self.store.jobs.create(job)
        logger.info(
            f"Created job {job_id} for {config.repository_owner}/{config.repository_name} "
            f"on {working_branch}"
        )
        return job

    # =========================================================================
    # RUN CONTROL
    # =========================================================================

    async def start_job(self, job_id: str, credential: Optional[str] = None) -> Job:
        """
        Launch the cycle loop for a PENDING or PAUSED job and return at once.

        Raises:
            JobAlreadyRunningError: a runner is registered for the job
            JobNotFoundError: no such job
            InvalidJobStateError: status is not pending/paused
        """
        # Claim first: no await between the check and the insert
        handle = self.registry.register(job_id)
        try:
            job = await self.store.jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if not job.status.is_startable():
                raise InvalidJobStateError(job_id, job.status.value, "start")

            changes: Dict[str, Any] = {"status": JobStatus.RUNNING}
            if job.started_at is None:
                changes["started_at"] = utc_now()
            await self.store.jobs.update(job_id, **changes)
            job = job.model_copy(update=changes)
        except BaseException:
            self.registry.unregister(job_id, handle)
            raise

        self.events.start_session(job_id)
        self.events.broadcast_job_started(job_id)

        task = asyncio.create_task(
            self._run_cycle_loop(job_id, handle.token, credential),
            name=f"orchestrator-job-{job_id[:8]}",
        )
        self.registry.attach(handle, task)

        logger.info(f"Started job {job_id} at cycle {job.current_cycle + 1}")
        return job

    async def pause_job(self, job_id: str) -> Job:
        """
        Signal the runner to stop after its in-flight phase and mark PAUSED.

        Raises:
            JobNotRunningError: no active runner
        """
        handle = self.registry.get(job_id)
        if handle is None:
            raise JobNotRunningError(job_id)

        handle.token.cancel("paused")
        await self.store.jobs.update(job_id, status=JobStatus.PAUSED)

        job = await self.store.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        self.events.broadcast_job_paused(job_id, job.current_cycle + 1)
        logger.info(f"Paused job {job_id} during cycle {job.current_cycle + 1}")
        return job

    async def resume_job(self, job_id: str, credential: Optional[str] = None) -> Job:
        """
        Restart a PAUSED job. Continues at current_cycle + 1.

        Raises:
            JobNotFoundError, InvalidJobStateError, JobAlreadyRunningError
        """
        job = await self.store.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.PAUSED:
            raise InvalidJobStateError(job_id, job.status.value, "resume")

        job = await self.start_job(job_id, credential)
        self.events.broadcast_job_resumed(job_id, job.current_cycle + 1)
        return job

    async def cancel_job(self, job_id: str) -> Job:
        """
        Stop the runner (awaiting it), then force status CANCELLED.

        With no active runner the job is simply marked cancelled.

        Raises:
            JobNotFoundError: no such job
        """
        job = await self.store.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        handle = self.registry.get(job_id)
        if handle is not None:
            handle.token.cancel("cancelled")
            if handle.task is not None and handle.task is not asyncio.current_task():
                # asyncio.wait never raises the runner's exception
                await asyncio.wait({handle.task})
            self.registry.unregister(job_id, handle)

        changes = {"status": JobStatus.CANCELLED, "completed_at": utc_now()}
        await self.store.jobs.update(job_id, **changes)
        self.events.end_session(job_id, "cancelled")

        logger.info(f"Cancelled job {job_id}")
        return job.model_copy(update=changes)

    async def complete_job(self, job_id: str, reason: Union[TerminationReason, str]) -> None:
        """Mark a job COMPLETED with its termination reason and end the session."""
        reason_value = reason.value if isinstance(reason, TerminationReason) else str(reason)
        await self.store.jobs.update(
            job_id,
            status=JobStatus.COMPLETED,
            completed_at=utc_now(),
            completion_reason=reason_value,
        )

        total_tasks = await self.store.tasks.count_by_job(job_id)
        job = await self.store.jobs.get(job_id)
        cycles = job.current_cycle if job else 0

        self.events.broadcast_job_completed(
            job_id, cycles, total_tasks, f"Job completed: {reason_value}"
        )
        self.events.end_session(job_id, reason_value)

        log_checkpoint("job_completed", {
            "job_id": job_id,
            "reason": reason_value,
            "cycles": cycles,
            "total_tasks": total_tasks,
        }, logger)

    # =========================================================================
    # READS & MUTATORS
    # =========================================================================

    async def get_job(self, job_id: str) -> Job:
        job = await self.store.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_job_with_cycles(self, job_id: str) -> JobWithCycles:
        job = await self.get_job(job_id)
        cycles = await self.store.cycles.list_by_job(job_id)
        return JobWithCycles(job=job, cycles=cycles)

    async def get_cycle_with_tasks(self, job_id: str, cycle_number: int) -> CycleWithTasks:
        await self.get_job(job_id)
        cycle = await self.store.cycles.get_by_number(job_id, cycle_number)
        if cycle is None:
            raise CycleNotFoundError(job_id, cycle_number)
        tasks = await self.store.tasks.list_by_cycle(cycle.cycle_id)
        return CycleWithTasks(cycle=cycle, tasks=tasks)

    async def list_jobs(self, owner_id: str, limit: int = 20) -> List[Job]:
        """Owner's jobs, newest first."""
        return await self.store.jobs.list_by_owner(owner_id, limit)

    async def update_request_document(self, job_id: str, request_document: str) -> Job:
        if not await self.store.jobs.update(job_id, request_document=request_document):
            raise JobNotFoundError(job_id)
        return await self.get_job(job_id)

    async def update_task_list(self, job_id: str, task_list: Optional[str]) -> Job:
        if not await self.store.jobs.update(job_id, task_list=task_list):
            raise JobNotFoundError(job_id)
        return await self.get_job(job_id)

    # =========================================================================
    # RUNNERS
    # =========================================================================

    def is_running(self, job_id: str) -> bool:
        return self.registry.is_active(job_id)

    async def wait_for_runner(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """
        Wait for a job's runner to exit.

        Returns:
            True if no runner remains
        """
        handle = self.registry.get(job_id)
        if handle is None or handle.task is None:
            return True
        _, pending = await asyncio.wait({handle.task}, timeout=timeout)
        return not pending

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Pause every running job and wait for the runners to wind down.

        Runners still busy after the timeout are cancelled outright; their
        jobs stay PAUSED and can be resumed by the next process.
        """
        timeout = self.defaults.orchestrator.shutdown_timeout_seconds if timeout is None else timeout
        job_ids = self.registry.active_job_ids()
        if not job_ids:
            return

        logger.info(f"Shutting down: pausing {len(job_ids)} active jobs")
        tasks = []
        for job_id in job_ids:
            handle = self.registry.get(job_id)
            if handle is None:
                continue
            try:
                await self.pause_job(job_id)
            except OrchestratorError as e:
                logger.warning(f"Could not pause job {job_id} during shutdown: {e}")
                handle.token.cancel("shutdown")
            if handle.task is not None:
                tasks.append(handle.task)

        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} runners did not stop within {timeout}s; cancelling")
            for task in pending:
                task.cancel()
            await asyncio.wait(pending)

    # =========================================================================
    # CYCLE LOOP
    # =========================================================================

    async def _run_cycle_loop(
        self,
        job_id: str,
        token: CancellationToken,
        credential: Optional[str],
    ) -> None:
        delay = self.defaults.orchestrator.inter_cycle_delay_seconds

        with log_context(job_id=job_id):
            log_checkpoint("job_started", {"job_id": job_id}, logger)
            try:
                while not token.is_cancelled:
                    job = await self.store.jobs.get(job_id)
                    if job is None:
                        raise JobNotFoundError(job_id)
                    if token.is_cancelled:
                        break

                    decision = self.policy.evaluate(job)
                    if decision.terminate:
                        logger.info(f"Job {job_id} terminating: {decision.reason.value}")
                        await self.complete_job(job_id, decision.reason)
                        return

                    next_cycle = job.current_cycle + 1
                    should_continue = await self.engine.run_cycle(job, next_cycle, token, credential)
                    await self.store.jobs.update(job_id, current_cycle=next_cycle)

                    if not should_continue:
                        await self.complete_job(job_id, TerminationReason.ALL_TASKS_COMPLETE)
                        return

                    if token.is_cancelled:
                        break

                    if await token.sleep(delay):
                        break

                logger.info(f"Job {job_id} runner stopped: {token.reason}")
            except asyncio.CancelledError:
                if token.is_cancelled:
                    logger.warning(f"Job {job_id} runner cancelled after stop request: {token.reason}")
                else:
                    await self._fail_job(job_id, RuntimeError("Job runner cancelled"))
                raise
            except Exception as e:
                await self._fail_job(job_id, e)

    async def _fail_job(self, job_id: str, error: Exception) -> None:
        message = (str(error) or type(error).__name__)[:4000]
        logger.exception(f"Job {job_id} failed: {message}")

        try:
            await self.store.jobs.record_error(job_id, message)
        except Exception as e:
            logger.error(f"Could not record error for job {job_id}: {e}")

        self.events.broadcast_job_error(job_id, message)
        self.events.end_session(job_id, "error")
        log_checkpoint("job_error", {"job_id": job_id, "error": message}, logger)


__all__ = ["JobLifecycleManager", "JobWithCycles", "CycleWithTasks"]

# ============================================================================
# CYCLE ENGINE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Four-phase cycle pipeline
# PURPOSE: Run discovery -> execution -> convergence -> update for one cycle
# CREATED: 17 OCT 2026
# ============================================================================
"""
Cycle Engine

Executes one numbered cycle of a job. A Cycle row is persisted first with
phase=discovery, and the phase column is advanced as each phase starts.

Return value of run_cycle():
    False  discovery found nothing; the job should finish normally
    True   the cycle ran (or was interrupted) and the loop may continue

The cancellation token is checked at every phase boundary. An in-flight
phase always finishes; the next one is not started.
"""

import asyncio
import logging
import uuid
from typing import List, Optional

from core.contracts import CyclePhase, TaskStatus, utc_now
from core.logging import log_checkpoint, log_context
from core.models import (
    CompletedTaskOutcome,
    Cycle,
    DiscoveryContext,
    DiscoveryResult,
    FailedTaskOutcome,
    Job,
    Task,
)
from services.broadcaster import as_safe_sink
from services.discovery import TaskDiscoverer
from services.planning import PlanUpdater
from services.workspace import RepositoryInspector, RepositorySnapshot
from .cancellation import CancellationToken
from .scheduler import ParallelTaskScheduler

logger = logging.getLogger(__name__)


async def _with_deadline(coro, seconds: Optional[float]):
    if seconds:
        return await asyncio.wait_for(coro, timeout=seconds)
    return await coro


class CycleEngine:
    """
    Runs the four phases of a cycle against the store and collaborators.
    """

    def __init__(
        self,
        store,
        discoverer: TaskDiscoverer,
        planner: PlanUpdater,
        scheduler: ParallelTaskScheduler,
        events,
        inspector: Optional[RepositoryInspector] = None,
        discovery_timeout_seconds: Optional[float] = None,
        planning_timeout_seconds: Optional[float] = None,
    ):
        self.store = store
        self.discoverer = discoverer
        self.planner = planner
        self.scheduler = scheduler
        self.events = as_safe_sink(events)
        self.inspector = inspector
        self.discovery_timeout_seconds = discovery_timeout_seconds
        self.planning_timeout_seconds = planning_timeout_seconds

    async def run_cycle(
        self,
        job: Job,
        cycle_number: int,
        token: CancellationToken,
        credential: Optional[str] = None,
    ) -> bool:
        """
        Run one cycle. Collaborator and store errors propagate to the caller.
        """
        with log_context(cycle_number=cycle_number):
            cycle = Cycle(
                cycle_id=uuid.uuid4().hex,
                job_id=job.job_id,
                cycle_number=cycle_number,
                phase=CyclePhase.DISCOVERY,
                started_at=utc_now(),
            )
            await self.store.cycles.create(cycle)
            logger.info(f"Cycle {cycle_number} started for job {job.job_id}")
            self.events.broadcast_cycle_started(job.job_id, cycle_number)
            self.events.broadcast_cycle_phase(job.job_id, cycle_number, CyclePhase.DISCOVERY.value)

            # ---- discovery
            tasks = await self._discover(job, cycle)
            if not tasks:
                await self._finish(cycle)
                logger.info(f"Cycle {cycle_number}: no tasks discovered")
                return False

            if self._interrupted(token, cycle, CyclePhase.EXECUTION):
                return True

            # ---- execution
            await self._enter_phase(job, cycle, CyclePhase.EXECUTION)
            await self.scheduler.run(job, cycle, tasks, token, credential)

            if self._interrupted(token, cycle, CyclePhase.CONVERGENCE):
                return True

            # ---- convergence
            await self._enter_phase(job, cycle, CyclePhase.CONVERGENCE)
            settled = await self._converge(cycle)

            if self._interrupted(token, cycle, CyclePhase.UPDATE):
                return True

            # ---- update
            await self._enter_phase(job, cycle, CyclePhase.UPDATE)
            await self._update(job, cycle, settled)

            await self._finish(cycle)
            log_checkpoint("cycle_completed", {
                "job_id": job.job_id,
                "cycle_number": cycle_number,
                "tasks_discovered": cycle.tasks_discovered,
                "tasks_completed": cycle.tasks_completed,
                "tasks_failed": cycle.tasks_failed,
            }, logger)
            return True

    # =========================================================================
    # PHASES
    # =========================================================================

    async def _discover(self, job: Job, cycle: Cycle) -> List[Task]:
        previous_summary = None
        if cycle.cycle_number > 1:
            previous = await self.store.cycles.get_by_number(job.job_id, cycle.cycle_number - 1)
            previous_summary = previous.summary if previous else None

        snapshot = RepositorySnapshot()
        if self.inspector is not None:
            snapshot = await self.inspector.inspect(job.session_path)

        context = DiscoveryContext(
            job_id=job.job_id,
            cycle_number=cycle.cycle_number,
            request_document=job.request_document,
            task_list=job.task_list,
            repo_owner=job.repository_owner,
            repo_name=job.repository_name,
            branch=job.working_branch,
            base_branch=job.base_branch,
            session_path=job.session_path,
            previous_cycle_summary=previous_summary,
            file_tree=snapshot.file_tree,
            git_status=snapshot.git_status,
            recent_commits=snapshot.recent_commits,
        )

        result: DiscoveryResult = await _with_deadline(
            self.discoverer.discover(context), self.discovery_timeout_seconds
        )
        if result is None:
            result = DiscoveryResult()

        tasks = [
            Task(
                task_id=uuid.uuid4().hex,
                cycle_id=cycle.cycle_id,
                job_id=job.job_id,
                task_number=index,
                description=discovered.description,
                context=discovered.context,
                priority=discovered.priority,
                can_run_parallel=discovered.parallel,
                status=TaskStatus.PENDING,
            )
            for index, discovered in enumerate(result.tasks, start=1)
        ]

        if tasks:
            await self.store.tasks.create_many(tasks)

        cycle.tasks_discovered = len(tasks)
        await self.store.cycles.update(cycle.cycle_id, tasks_discovered=len(tasks))

        self.events.broadcast_tasks_discovered(
            job.job_id,
            cycle.cycle_number,
            [{"task_id": t.task_id, "description": t.description} for t in tasks],
        )
        logger.info(
            f"Cycle {cycle.cycle_number}: discovered {len(tasks)} tasks"
            + (f" ({result.reasoning})" if result.reasoning else "")
        )
        return tasks

    async def _converge(self, cycle: Cycle) -> List[Task]:
        tasks = await self.store.tasks.list_by_cycle(cycle.cycle_id)
        cycle.tasks_completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        cycle.tasks_failed = sum(1 for t in tasks if t.status == TaskStatus.FAILED)
        await self.store.cycles.update(
            cycle.cycle_id,
            tasks_completed=cycle.tasks_completed,
            tasks_failed=cycle.tasks_failed,
        )
        logger.info(
            f"Cycle {cycle.cycle_number} converged: {cycle.tasks_completed} completed, "
            f"{cycle.tasks_failed} failed of {len(tasks)}"
        )
        return tasks

    async def _update(self, job: Job, cycle: Cycle, tasks: List[Task]) -> None:
        completed = [
            CompletedTaskOutcome(
                description=t.description,
                result_summary=t.result_summary,
                files_modified=t.files_modified,
            )
            for t in tasks if t.status == TaskStatus.COMPLETED
        ]
        failed = [
            FailedTaskOutcome(description=t.description, error_message=t.error_message)
            for t in tasks if t.status == TaskStatus.FAILED
        ]

        # The plan may have been edited while the cycle ran
        current = await self.store.jobs.get(job.job_id)
        old_task_list = current.task_list if current else job.task_list

        summary = await _with_deadline(
            self.planner.summarize(completed, failed), self.planning_timeout_seconds
        )
        task_list = await _with_deadline(
            self.planner.update_task_list(
                old_task_list,
                completed,
                failed,
                {"request_document": job.request_document, "cycle_number": cycle.cycle_number},
            ),
            self.planning_timeout_seconds,
        )

        cycle.summary = summary
        await self.store.cycles.update(cycle.cycle_id, summary=summary)
        await self.store.jobs.update(job.job_id, task_list=task_list)
        job.task_list = task_list

        self.events.broadcast_cycle_completed(
            job.job_id, cycle.cycle_number, cycle.tasks_completed, cycle.tasks_failed, summary
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _enter_phase(self, job: Job, cycle: Cycle, phase: CyclePhase) -> None:
        cycle.phase = phase
        await self.store.cycles.update(cycle.cycle_id, phase=phase)
        self.events.broadcast_cycle_phase(job.job_id, cycle.cycle_number, phase.value)

    async def _finish(self, cycle: Cycle) -> None:
        cycle.phase = CyclePhase.COMPLETED
        cycle.completed_at = utc_now()
        await self.store.cycles.update(
            cycle.cycle_id, phase=CyclePhase.COMPLETED, completed_at=cycle.completed_at
        )

    def _interrupted(self, token: CancellationToken, cycle: Cycle, next_phase: CyclePhase) -> bool:
        if token.is_cancelled:
            logger.info(
                f"Cycle {cycle.cycle_number} stopped at {cycle.phase.value} before "
                f"{next_phase.value} ({token.reason})"
            )
            return True
        return False


__all__ = ["CycleEngine"]

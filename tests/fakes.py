# ============================================================================
# TEST FAKES
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Tests - In-memory store and recording collaborators
# PURPOSE: Run the orchestrator end to end without PostgreSQL
# CREATED: 17 OCT 2026
# ============================================================================
"""
In-memory stand-ins for the JobStore and the collaborators.

The repositories mirror the PostgreSQL ones method for method and store
deep copies, so callers never share objects with the "database".
"""

import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from core.config import (
    CollaboratorDefaults,
    Defaults,
    OrchestratorDefaults,
)
from core.contracts import JobStatus, utc_now
from core.models import (
    Cycle,
    DiscoveredTask,
    DiscoveryContext,
    DiscoveryResult,
    Job,
    OrchestratorEvent,
    Task,
    TaskExecutionResult,
)
from services.broadcaster import EventBroadcaster
from services.discovery import TaskDiscoverer
from services.execution import ExecutorRegistry, TaskExecutionContext, TaskExecutor
from services.planning import PlanUpdater


# ============================================================================
# STORE
# ============================================================================

class _InMemoryRepository:
    key_field = ""

    def __init__(self):
        self.rows: Dict[str, Any] = {}

    def _apply(self, key: str, fields: Dict[str, Any]) -> bool:
        row = self.rows.get(key)
        if row is None:
            return False
        self.rows[key] = row.model_copy(update=fields, deep=True)
        return True

    async def get(self, key: str):
        row = self.rows.get(key)
        return row.model_copy(deep=True) if row is not None else None


class InMemoryJobRepository(_InMemoryRepository):

    async def create(self, job: Job) -> Job:
        self.rows[job.job_id] = job.model_copy(deep=True)
        return job

    async def update(self, job_id: str, **fields: Any) -> bool:
        return self._apply(job_id, {**fields, "updated_at": utc_now()})

    async def record_error(self, job_id: str, message: str) -> bool:
        row = self.rows.get(job_id)
        if row is None:
            return False
        return await self.update(
            job_id,
            status=JobStatus.ERROR,
            last_error=message,
            error_count=row.error_count + 1,
        )

    async def list_by_owner(self, owner_id: str, limit: int = 20) -> List[Job]:
        jobs = [j for j in self.rows.values() if j.owner_id == owner_id]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return [j.model_copy(deep=True) for j in jobs[:limit]]


class InMemoryCycleRepository(_InMemoryRepository):

    async def create(self, cycle: Cycle) -> Cycle:
        for existing in self.rows.values():
            if existing.job_id == cycle.job_id and existing.cycle_number == cycle.cycle_number:
                raise RuntimeError(
                    f"duplicate cycle {cycle.cycle_number} for job {cycle.job_id}"
                )
        self.rows[cycle.cycle_id] = cycle.model_copy(deep=True)
        return cycle

    async def update(self, cycle_id: str, **fields: Any) -> bool:
        return self._apply(cycle_id, fields)

    async def get_by_number(self, job_id: str, cycle_number: int) -> Optional[Cycle]:
        for cycle in self.rows.values():
            if cycle.job_id == job_id and cycle.cycle_number == cycle_number:
                return cycle.model_copy(deep=True)
        return None

    async def list_by_job(self, job_id: str) -> List[Cycle]:
        cycles = [c for c in self.rows.values() if c.job_id == job_id]
        return [c.model_copy(deep=True) for c in sorted(cycles, key=lambda c: c.cycle_number)]


class InMemoryTaskRepository(_InMemoryRepository):

    def __init__(self):
        super().__init__()
        # Completing any of these task ids raises update_error
        self.fail_completion_for: Set[str] = set()
        self.update_error: Exception = RuntimeError("database unavailable")

    async def create_many(self, tasks: List[Task]) -> List[Task]:
        for task in tasks:
            self.rows[task.task_id] = task.model_copy(deep=True)
        return tasks

    async def update(self, task_id: str, **fields: Any) -> bool:
        if task_id in self.fail_completion_for and "completed_at" in fields:
            raise self.update_error
        return self._apply(task_id, fields)

    async def list_by_cycle(self, cycle_id: str) -> List[Task]:
        tasks = [t for t in self.rows.values() if t.cycle_id == cycle_id]
        return [t.model_copy(deep=True) for t in sorted(tasks, key=lambda t: t.task_number)]

    async def count_by_job(self, job_id: str) -> int:
        return sum(1 for t in self.rows.values() if t.job_id == job_id)


class InMemoryJobStore:
    """Same shape as repositories.JobStore."""

    def __init__(self):
        self.jobs = InMemoryJobRepository()
        self.cycles = InMemoryCycleRepository()
        self.tasks = InMemoryTaskRepository()


# ============================================================================
# COLLABORATORS
# ============================================================================

TaskSpec = Union[str, DiscoveredTask]


def discovered(*specs: TaskSpec) -> List[DiscoveredTask]:
    """Build DiscoveredTasks; a string is a parallel task with that description."""
    return [s if isinstance(s, DiscoveredTask) else DiscoveredTask(description=s) for s in specs]


class ScriptedDiscoverer(TaskDiscoverer):
    """
    Returns one scripted result per call; empty once the script runs out.

    With repeat=True the last result is returned forever.
    """

    def __init__(self, *rounds: Sequence[TaskSpec], repeat: bool = False, error: Optional[Exception] = None):
        self.rounds = [discovered(*r) for r in rounds]
        self.repeat = repeat
        self.error = error
        self.contexts: List[DiscoveryContext] = []
        self.on_discover: Optional[Callable[[DiscoveryContext], None]] = None

    async def discover(self, context: DiscoveryContext) -> DiscoveryResult:
        self.contexts.append(context)
        if self.on_discover:
            self.on_discover(context)
        if self.error is not None:
            raise self.error

        index = len(self.contexts) - 1
        if index < len(self.rounds):
            tasks = self.rounds[index]
        elif self.repeat and self.rounds:
            tasks = self.rounds[-1]
        else:
            tasks = []
        return DiscoveryResult(tasks=list(tasks), reasoning="scripted")


class RecordingExecutor(TaskExecutor):
    """
    Succeeds unless the task description is in fail_descriptions (raises
    RuntimeError) or cancel_descriptions (raises CancelledError itself).

    If gate is set, every call waits for it; `started` fires when the first
    call begins.
    """

    def __init__(
        self,
        fail_descriptions: Iterable[str] = (),
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
        files: Optional[List[str]] = None,
        cancel_descriptions: Iterable[str] = (),
    ):
        self.fail_descriptions = set(fail_descriptions)
        self.cancel_descriptions = set(cancel_descriptions)
        self.delay = delay
        self.gate = gate
        self.files = files or []
        self.calls: List[TaskExecutionContext] = []
        self.started = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, ctx: TaskExecutionContext) -> TaskExecutionResult:
        self.calls.append(ctx)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            ctx.report_progress(f"working on {ctx.task.description}")
            if ctx.task.description in self.fail_descriptions:
                raise RuntimeError(f"boom: {ctx.task.description}")
            if ctx.task.description in self.cancel_descriptions:
                raise asyncio.CancelledError()
            return TaskExecutionResult(
                result_summary=f"did {ctx.task.description}",
                files_modified=list(self.files),
            )
        finally:
            self.in_flight -= 1

    @property
    def executed(self) -> List[str]:
        return [c.task.description for c in self.calls]


class FixedPlanner(PlanUpdater):
    """Fixed summary; task list records the cycle number."""

    def __init__(self, summary: str = "Fixed summary", error: Optional[Exception] = None):
        self.summary = summary
        self.error = error
        self.summarize_calls: List[tuple] = []
        self.update_calls: List[tuple] = []

    async def summarize(self, completed, failed) -> str:
        self.summarize_calls.append((completed, failed))
        if self.error is not None:
            raise self.error
        return self.summary

    async def update_task_list(self, old_task_list, completed, failed, extra=None) -> str:
        self.update_calls.append((old_task_list, completed, failed, extra))
        return f"plan after cycle {(extra or {}).get('cycle_number')}"


class RecordingBroadcaster(EventBroadcaster):
    """EventBroadcaster that keeps every event it broadcasts."""

    def __init__(self):
        super().__init__()
        self.events: List[OrchestratorEvent] = []

    def broadcast(self, event: OrchestratorEvent) -> None:
        self.events.append(event)
        super().broadcast(event)

    def types(self, job_id: Optional[str] = None) -> List[str]:
        return [e.type.value for e in self.events if job_id is None or e.job_id == job_id]

    def of_type(self, event_type: str) -> List[OrchestratorEvent]:
        return [e for e in self.events if e.type.value == event_type]


# ============================================================================
# FACTORIES
# ============================================================================

def fast_defaults(**orchestrator: Any) -> Defaults:
    """Defaults with no inter-cycle delay."""
    settings = {"inter_cycle_delay_seconds": 0.0, "shutdown_timeout_seconds": 2.0}
    settings.update(orchestrator)
    return Defaults(
        orchestrator=OrchestratorDefaults(**settings),
        collaborators=CollaboratorDefaults(simulated_step_delay_seconds=0.0),
    )


def make_executors(executor: TaskExecutor, provider: str = "claude") -> ExecutorRegistry:
    registry = ExecutorRegistry()
    registry.register(provider, executor)
    return registry


def make_job(**overrides: Any) -> Job:
    fields = dict(
        job_id="job-0001",
        owner_id="owner-1",
        repository_owner="acme",
        repository_name="widgets",
        base_branch="main",
        working_branch="orchestrator/job-0001",
        session_path="acme__widgets__orchestrator-job-0001",
        request_document="- [ ] Do the thing",
        status=JobStatus.RUNNING,
        max_parallel_tasks=3,
    )
    fields.update(overrides)
    return Job(**fields)


def make_cycle(job: Job, cycle_number: int = 1) -> Cycle:
    return Cycle(
        cycle_id=f"{job.job_id}-c{cycle_number}",
        job_id=job.job_id,
        cycle_number=cycle_number,
        started_at=utc_now(),
    )


def make_tasks(cycle: Cycle, *parallel_flags: bool) -> List[Task]:
    """One task per flag, numbered from 1, described as task-<n>."""
    return [
        Task(
            task_id=f"{cycle.cycle_id}-t{n}",
            cycle_id=cycle.cycle_id,
            job_id=cycle.job_id,
            task_number=n,
            description=f"task-{n}",
            can_run_parallel=flag,
        )
        for n, flag in enumerate(parallel_flags, start=1)
    ]


async def seed(store: InMemoryJobStore, job: Job, cycle: Optional[Cycle] = None, tasks: Sequence[Task] = ()) -> None:
    await store.jobs.create(job)
    if cycle is not None:
        await store.cycles.create(cycle)
    if tasks:
        await store.tasks.create_many(list(tasks))

# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Job lifecycle and cycle pipeline
# PURPOSE: Drive jobs through repeated discovery/execution/update cycles
# CREATED: 17 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import JobLifecycleManager

    manager = JobLifecycleManager(store, discoverer, planner, executors, events)
    job = await manager.create_job(owner_id, config)
    await manager.start_job(job.job_id, credential)  # Returns immediately
"""

from .cancellation import CancellationToken
from .engine import CycleEngine
from .lifecycle import CycleWithTasks, JobLifecycleManager, JobWithCycles
from .registry import ActiveRunnerRegistry, RunnerHandle
from .scheduler import ParallelTaskScheduler, ScheduleOutcome, plan_batches
from .termination import TerminationDecision, TerminationPolicy, evaluate_termination

__all__ = [
    "CancellationToken",
    "CycleEngine",
    "JobLifecycleManager",
    "JobWithCycles",
    "CycleWithTasks",
    "ActiveRunnerRegistry",
    "RunnerHandle",
    "ParallelTaskScheduler",
    "ScheduleOutcome",
    "plan_batches",
    "TerminationDecision",
    "TerminationPolicy",
    "evaluate_termination",
]

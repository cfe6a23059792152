# ============================================================================
# JOB STORE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Repository bundle handed to the orchestrator
# PURPOSE: One object carrying the job, cycle and task repositories
# CREATED: 17 OCT 2026
# ============================================================================
"""
Job Store

The orchestrator only talks to storage through this bundle, so tests can
swap in an in-memory store with the same three attributes.
"""

from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from .job_repo import JobRepository
from .cycle_repo import CycleRepository
from .task_repo import TaskRepository


@dataclass
class JobStore:
    """Durable CRUD for Job/Cycle/Task records."""

    jobs: JobRepository
    cycles: CycleRepository
    tasks: TaskRepository

    @classmethod
    def from_pool(cls, pool: AsyncConnectionPool) -> "JobStore":
        return cls(
            jobs=JobRepository(pool),
            cycles=CycleRepository(pool),
            tasks=TaskRepository(pool),
        )

# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Database access layer
# PURPOSE: CRUD operations for jobs, cycles and tasks
# CREATED: 17 OCT 2026
# ============================================================================
"""
Repositories Module

Provides database access for orchestration entities.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import JobStore, get_pool

    pool = await get_pool()
    store = JobStore.from_pool(pool)
    job = await store.jobs.get(job_id)
"""

from .database import init_pool, get_pool, close_pool, get_connection_string
from .job_repo import JobRepository
from .cycle_repo import CycleRepository
from .task_repo import TaskRepository
from .store import JobStore

__all__ = [
    "init_pool",
    "get_pool",
    "close_pool",
    "get_connection_string",
    "JobRepository",
    "CycleRepository",
    "TaskRepository",
    "JobStore",
]

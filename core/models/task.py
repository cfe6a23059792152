# ============================================================================
# CLAUDE CONTEXT - TASK MODEL
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core model - One unit of discovered work
# PURPOSE: Track a discovered task from pending through its terminal state
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: Task
# DEPENDENCIES: pydantic
# ============================================================================
"""
Task Model

Tasks are created by the discovery phase, one per discovered item, and are
only ever mutated by the scheduler that runs them in the same cycle.

There is no retry policy: a failed task stays FAILED and is reported in
convergence. retry_count is kept for a future policy.
"""

from datetime import datetime
from typing import Dict, List, Optional, ClassVar
from pydantic import Field

from core.contracts import TaskData, TaskPriority, TaskStatus, utc_now


class Task(TaskData):
    """
    One discrete unit of work within a cycle.

    Maps to: orchestrator.orchestrator_tasks table
    """

    __sql_table__: ClassVar[str] = "orchestrator_tasks"
    __sql_schema__: ClassVar[str] = "orchestrator"
    __sql_primary_key__: ClassVar[List[str]] = ["task_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "cycle_id": "orchestrator.orchestrator_cycles(cycle_id)",
        "job_id": "orchestrator.orchestrator_jobs(job_id)",
    }
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_orch_tasks_job", ["job_id"]),
    ]
    __sql_unique__: ClassVar[List[tuple]] = [
        ("uq_orch_tasks_cycle_number", ["cycle_id", "task_number"]),
    ]

    # Content
    description: str = Field(...)
    context: str = Field(default="")
    priority: TaskPriority = Field(default=TaskPriority.P1)
    can_run_parallel: bool = Field(default=True)

    # Execution
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    result_summary: Optional[str] = None
    error_message: Optional[str] = Field(default=None, max_length=4000)
    files_modified: List[str] = Field(default_factory=list)
    retry_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


__all__ = ["Task"]

# ============================================================================
# CLAUDE CONTEXT - JOB MODEL
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core model - One long-running orchestration run
# PURPOSE: Track the goal, plan and control state of a multi-cycle job
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: Job, JobConfig
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Model

A Job targets one repository/branch with a goal document (the request
document) and loops through discovery -> execution -> convergence ->
update cycles until the termination policy fires, nothing is left to do,
or an operator pauses/cancels it.

The request document is immutable after creation (except through the
explicit mutator); the task list is the living plan and is rewritten at
the end of every cycle.
"""

from datetime import datetime
from typing import Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field, computed_field, field_validator

from core.contracts import JobData, JobStatus, utc_now


class JobConfig(BaseModel):
    """
    Caller-supplied settings for a new job.

    Optional fields fall back to configured defaults at creation time.
    """

    repository_owner: str = Field(..., min_length=1, max_length=128)
    repository_name: str = Field(..., min_length=1, max_length=128)
    base_branch: str = Field(..., min_length=1, max_length=255)
    working_branch: Optional[str] = Field(default=None, max_length=255)
    request_document: str = Field(..., min_length=1)
    initial_task_list: Optional[str] = None
    max_cycles: Optional[int] = Field(default=None, ge=1)
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    max_parallel_tasks: Optional[int] = Field(default=None, ge=1, le=50)
    provider: Optional[str] = Field(default=None, max_length=64)

    @field_validator("repository_owner", "repository_name", "base_branch", "request_document")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("working_branch")
    @classmethod
    def _blank_branch_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class Job(JobData):
    """
    A multi-cycle orchestration job.

    Maps to: orchestrator.orchestrator_jobs table

    Lifecycle:
        1. Created with status=PENDING, current_cycle=0
        2. RUNNING while a runner is registered for it
        3. PAUSED/CANCELLED by an operator, COMPLETED by the loop,
           ERROR on a collaborator or store failure
    """

    # =========================================================================
    # SQL DDL METADATA (Used by PydanticToSQL generator)
    # =========================================================================
    __sql_table__: ClassVar[str] = "orchestrator_jobs"
    __sql_schema__: ClassVar[str] = "orchestrator"
    __sql_primary_key__: ClassVar[List[str]] = ["job_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_orch_jobs_owner_created", ["owner_id", "created_at"]),
        ("idx_orch_jobs_status", ["status"]),
    ]

    # Target
    owner_id: str = Field(..., max_length=128, description="User that owns the job")
    repository_owner: str = Field(..., max_length=128)
    repository_name: str = Field(..., max_length=128)
    base_branch: str = Field(..., max_length=255)
    working_branch: str = Field(..., max_length=255)
    session_path: str = Field(
        ...,
        max_length=512,
        description="Workspace path derived from owner, repo and working branch"
    )

    # Content
    request_document: str = Field(..., description="The goal")
    task_list: Optional[str] = Field(
        default=None,
        description="Living plan, rewritten by every cycle's update phase"
    )

    # Control
    status: JobStatus = Field(default=JobStatus.PENDING)
    current_cycle: int = Field(default=0, ge=0, description="Number of completed cycles")
    max_cycles: Optional[int] = Field(default=None, ge=1)
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    max_parallel_tasks: int = Field(default=3, ge=1)
    provider: str = Field(default="claude", max_length=64)
    completion_reason: Optional[str] = Field(default=None, max_length=64)

    # Diagnostics
    last_error: Optional[str] = Field(default=None, max_length=4000)
    error_count: int = Field(default=0, ge=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if job is in a terminal state."""
        return self.status.is_terminal()

    def elapsed_minutes(self, now: Optional[datetime] = None) -> Optional[float]:
        """Wall-clock minutes since started_at, or None if never started."""
        if self.started_at is None:
            return None
        now = now or utc_now()
        return (now - self.started_at).total_seconds() / 60.0


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["Job", "JobConfig"]

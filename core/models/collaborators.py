# ============================================================================
# CLAUDE CONTEXT - COLLABORATOR CONTRACTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core model - Payloads exchanged with discoverer/executor/planner
# PURPOSE: Typed boundary between the engine and swappable collaborators
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: DiscoveryContext, DiscoveredTask, DiscoveryResult,
#          CompletedTaskOutcome, FailedTaskOutcome, TaskExecutionResult
# DEPENDENCIES: pydantic
# ============================================================================
"""
Collaborator Contracts

Not persisted. These models are what the cycle engine hands to (and
receives from) the Task Discoverer, Task Executor and Plan Updater.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from core.contracts import TaskPriority


class DiscoveryContext(BaseModel):
    """Everything the discoverer needs to propose the next tasks."""

    job_id: str
    cycle_number: int = Field(..., ge=1)
    request_document: str
    task_list: Optional[str] = None
    repo_owner: str
    repo_name: str
    branch: str
    base_branch: str
    session_path: str
    previous_cycle_summary: Optional[str] = None

    # Repository state (placeholders when no workspace is available)
    file_tree: str = "File tree unavailable"
    git_status: str = "Git status unavailable"
    recent_commits: List[str] = Field(default_factory=list)


class DiscoveredTask(BaseModel):
    """One candidate task proposed by the discoverer."""

    description: str = Field(..., min_length=1)
    context: str = ""
    priority: TaskPriority = TaskPriority.P1
    parallel: bool = True

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class DiscoveryResult(BaseModel):
    """Discoverer output. An empty task list ends the job normally."""

    tasks: List[DiscoveredTask] = Field(default_factory=list)
    reasoning: Optional[str] = None


class TaskExecutionResult(BaseModel):
    """What an executor reports on success."""

    result_summary: Optional[str] = None
    files_modified: List[str] = Field(default_factory=list)


class CompletedTaskOutcome(BaseModel):
    """A completed task as seen by the plan updater."""

    description: str
    result_summary: Optional[str] = None
    files_modified: List[str] = Field(default_factory=list)


class FailedTaskOutcome(BaseModel):
    """A failed task as seen by the plan updater."""

    description: str
    error_message: Optional[str] = None


__all__ = [
    "DiscoveryContext",
    "DiscoveredTask",
    "DiscoveryResult",
    "TaskExecutionResult",
    "CompletedTaskOutcome",
    "FailedTaskOutcome",
]

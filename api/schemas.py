# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 17 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the orchestrator API.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from core.contracts import CyclePhase, JobStatus, TaskPriority, TaskStatus
from core.models import JobConfig


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class JobCreate(JobConfig):
    """Request to create a new job."""
    auto_start: bool = Field(default=False, description="Start the job immediately")
    credential: Optional[str] = Field(
        default=None,
        description="Execution credential; falls back to the server's environment"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "repository_owner": "acme",
                    "repository_name": "widgets",
                    "base_branch": "main",
                    "request_document": "- [ ] Add input validation\n- [ ] Write tests",
                    "max_cycles": 5,
                    "auto_start": True,
                }
            ]
        }
    }


class JobStartRequest(BaseModel):
    """Start or resume a job."""
    credential: Optional[str] = None


class RequestDocumentUpdate(BaseModel):
    request_document: str = Field(..., min_length=1)


class TaskListUpdate(BaseModel):
    task_list: Optional[str] = None


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class TaskResponse(BaseModel):
    """Task response."""
    task_id: str
    cycle_id: str
    job_id: str
    task_number: int
    description: str
    context: str = ""
    priority: TaskPriority
    can_run_parallel: bool
    status: TaskStatus
    result_summary: Optional[str] = None
    error_message: Optional[str] = None
    files_modified: List[str] = []
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CycleResponse(BaseModel):
    """Cycle response."""
    cycle_id: str
    job_id: str
    cycle_number: int
    phase: CyclePhase
    tasks_discovered: int = 0
    tasks_launched: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0
    summary: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CycleDetailResponse(BaseModel):
    """Cycle with its tasks."""
    cycle: CycleResponse
    tasks: List[TaskResponse]


class JobResponse(BaseModel):
    """Job response."""
    job_id: str
    owner_id: str
    repository_owner: str
    repository_name: str
    base_branch: str
    working_branch: str
    session_path: str
    request_document: str
    task_list: Optional[str] = None
    status: JobStatus
    current_cycle: int
    max_cycles: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    max_parallel_tasks: int
    provider: str
    completion_reason: Optional[str] = None
    last_error: Optional[str] = None
    error_count: int = 0
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: datetime
    is_running: bool = False

    model_config = {"from_attributes": True}


class JobDetailResponse(BaseModel):
    """Job with its cycles."""
    job: JobResponse
    cycles: List[CycleResponse]


class JobListResponse(BaseModel):
    """List of jobs response."""
    jobs: List[JobResponse]
    total: int


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
    job_id: Optional[str] = None


__all__ = [
    "JobCreate",
    "JobStartRequest",
    "RequestDocumentUpdate",
    "TaskListUpdate",
    "TaskResponse",
    "CycleResponse",
    "CycleDetailResponse",
    "JobResponse",
    "JobDetailResponse",
    "JobListResponse",
    "ErrorResponse",
]

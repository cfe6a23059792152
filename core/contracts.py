# ============================================================================
# CLAUDE CONTEXT - BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Foundation - Core enums
# PURPOSE: Status, phase and reason enums shared by models, store and engine
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: JobStatus, CyclePhase, TaskStatus, TaskPriority, TerminationReason,
#          JobData, CycleData, TaskData, utc_now
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the cycle orchestration system.

These enums and identity models cross every boundary:
- SQL (PostgreSQL enum types and key columns)
- HTTP (API payloads and event streams)
- Python (internal processing)
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware current time; every persisted timestamp uses this."""
    return datetime.now(timezone.utc)


# ============================================================================
# STATUS ENUMS
# ============================================================================

class JobStatus(str, Enum):
    """
    Job lifecycle states.

    State transitions:
        PENDING -> RUNNING -> COMPLETED
                           -> PAUSED -> RUNNING
                           -> ERROR
        any     -> CANCELLED
    """
    PENDING = "pending"          # Created, never started
    RUNNING = "running"          # Cycle loop active
    PAUSED = "paused"            # Stopped cooperatively, resumable
    COMPLETED = "completed"      # Termination policy fired or nothing left to do
    CANCELLED = "cancelled"      # Manually cancelled
    ERROR = "error"              # Collaborator or store failure, not retried

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.ERROR)

    def is_startable(self) -> bool:
        """Check if a runner may be launched from this state."""
        return self in (JobStatus.PENDING, JobStatus.PAUSED)


class CyclePhase(str, Enum):
    """
    Last phase reached by a cycle.

    Phases run strictly in declaration order.
    """
    DISCOVERY = "discovery"
    EXECUTION = "execution"
    CONVERGENCE = "convergence"
    UPDATE = "update"
    COMPLETED = "completed"


class TaskStatus(str, Enum):
    """Task execution states."""
    PENDING = "pending"          # Discovered, not yet dispatched
    RUNNING = "running"          # Executor invoked
    COMPLETED = "completed"      # Executor returned normally
    FAILED = "failed"            # Executor raised, timed out or was unavailable

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskPriority(str, Enum):
    """Priority tag assigned by the discoverer."""
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"


class TerminationReason(str, Enum):
    """Why a job stopped looping."""
    MAX_CYCLES_REACHED = "max_cycles_reached"
    TIME_LIMIT_REACHED = "time_limit_reached"
    ALL_TASKS_COMPLETE = "all_tasks_complete"


# ============================================================================
# BASE DATA CONTRACTS
# ============================================================================

class JobData(BaseModel):
    """
    Essential job identity - the minimum fields that define a job.
    """
    job_id: str = Field(..., max_length=64, description="uuid4 hex")

    model_config = {"frozen": False}


class CycleData(BaseModel):
    """
    Essential cycle identity within a job.
    """
    cycle_id: str = Field(..., max_length=64)
    job_id: str = Field(..., max_length=64)
    cycle_number: int = Field(..., ge=1, description="1-based, gapless per job")

    model_config = {"frozen": False}


class TaskData(BaseModel):
    """
    Essential task identity - what gets handed to an executor.
    """
    task_id: str = Field(..., max_length=64)
    cycle_id: str = Field(..., max_length=64)
    job_id: str = Field(..., max_length=64)
    task_number: int = Field(..., ge=1, description="1-based position within the cycle")

    model_config = {"frozen": False}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "JobStatus",
    "CyclePhase",
    "TaskStatus",
    "TaskPriority",
    "TerminationReason",
    "JobData",
    "CycleData",
    "TaskData",
    "utc_now",
]

# ============================================================================
# CLAUDE CONTEXT - ORCHESTRATOR EVENT MODEL
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core model - Progress notifications
# PURPOSE: Fan-out progress events for live job streams
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OrchestratorEvent, EventType
# DEPENDENCIES: pydantic, enum
# ============================================================================
"""
Orchestrator Event Model

Events are emitted in the order the engine reaches each milestone. They
are best-effort: never persisted, never awaited by the pipeline.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict
from pydantic import BaseModel, Field

from core.contracts import utc_now


class EventType(str, Enum):
    """Types of events broadcast while a job runs."""

    # Job lifecycle
    JOB_STARTED = "job_started"
    JOB_PAUSED = "job_paused"
    JOB_RESUMED = "job_resumed"
    JOB_COMPLETED = "job_completed"
    JOB_ERROR = "job_error"
    JOB_ENDED = "job_ended"

    # Cycle lifecycle
    CYCLE_STARTED = "cycle_started"
    CYCLE_PHASE = "cycle_phase"
    CYCLE_COMPLETED = "cycle_completed"

    # Task lifecycle
    TASKS_DISCOVERED = "tasks_discovered"
    TASK_STARTED = "task_started"
    TASK_PROGRESS = "task_progress"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"

    # Stream keepalive
    HEARTBEAT = "heartbeat"


class OrchestratorEvent(BaseModel):
    """A single progress notification for one job."""

    type: EventType
    job_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_sse(self) -> str:
        """Render as a server-sent events frame."""
        return f"event: {self.type.value}\ndata: {self.model_dump_json()}\n\n"


__all__ = ["OrchestratorEvent", "EventType"]

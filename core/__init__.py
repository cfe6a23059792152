# ============================================================================
# CLAUDE CONTEXT - CORE MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models, errors and schema utilities
# LAST_REVIEWED: 17 OCT 2026
# ============================================================================

from core.contracts import JobStatus, CyclePhase, TaskStatus, TaskPriority, TerminationReason
from core.models import (
    Job,
    JobConfig,
    Cycle,
    Task,
    OrchestratorEvent,
    EventType,
)
from core.errors import OrchestratorError
from core.schema import PydanticToSQL

__all__ = [
    # Enums
    "JobStatus",
    "CyclePhase",
    "TaskStatus",
    "TaskPriority",
    "TerminationReason",
    "EventType",
    # Models
    "Job",
    "JobConfig",
    "Cycle",
    "Task",
    "OrchestratorEvent",
    # Errors
    "OrchestratorError",
    # Schema
    "PydanticToSQL",
]

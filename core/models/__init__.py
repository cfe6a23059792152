# ============================================================================
# CLAUDE CONTEXT - MODELS MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 17 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the cycle orchestrator.
Persisted models define SQL metadata via __sql_* ClassVar attributes for
DDL generation.

Single Source of Truth Pattern:
    - Pydantic models define structure
    - PydanticToSQL reads __sql_* metadata
    - PostgreSQL schema generated from models
"""

from core.models.job import Job, JobConfig
from core.models.cycle import Cycle
from core.models.task import Task
from core.models.events import OrchestratorEvent, EventType
from core.models.collaborators import (
    DiscoveryContext,
    DiscoveredTask,
    DiscoveryResult,
    TaskExecutionResult,
    CompletedTaskOutcome,
    FailedTaskOutcome,
)

__all__ = [
    # Persisted
    "Job",
    "JobConfig",
    "Cycle",
    "Task",
    # Events
    "OrchestratorEvent",
    "EventType",
    # Collaborator payloads
    "DiscoveryContext",
    "DiscoveredTask",
    "DiscoveryResult",
    "TaskExecutionResult",
    "CompletedTaskOutcome",
    "FailedTaskOutcome",
]

# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Collaborators consumed by the orchestrator
# PURPOSE: Event broadcasting, discovery, execution and planning
# CREATED: 17 OCT 2026
# ============================================================================
"""
Services Module

The collaborators the orchestrator drives. Each has an abstract contract
and a default implementation; swap implementations by passing different
instances to JobLifecycleManager.

Usage:
    from services import EventBroadcaster, TaskListDiscoverer

    broadcaster = EventBroadcaster()
    discoverer = TaskListDiscoverer(max_tasks=10)
"""

from .broadcaster import EventBroadcaster, SafeEventSink, as_safe_sink
from .discovery import TaskDiscoverer, TaskListDiscoverer
from .execution import (
    TaskExecutionContext,
    TaskExecutor,
    SimulatedTaskExecutor,
    ExecutorRegistry,
    ExecutorNotFoundError,
    DuplicateExecutorError,
)
from .planning import PlanUpdater, MarkdownPlanUpdater
from .workspace import RepositoryInspector, RepositorySnapshot

__all__ = [
    "EventBroadcaster",
    "SafeEventSink",
    "as_safe_sink",
    "TaskDiscoverer",
    "TaskListDiscoverer",
    "TaskExecutionContext",
    "TaskExecutor",
    "SimulatedTaskExecutor",
    "ExecutorRegistry",
    "ExecutorNotFoundError",
    "DuplicateExecutorError",
    "PlanUpdater",
    "MarkdownPlanUpdater",
    "RepositoryInspector",
    "RepositorySnapshot",
]

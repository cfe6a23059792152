# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for the cycle loop, collaborators and API
# CREATED: 17 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for orchestration. These can be overridden via
environment variables or per-job configuration.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from enum import Enum


class BatchOrdering(str, Enum):
    """How the scheduler orders sequential tasks relative to parallel chunks."""
    PARALLEL_FIRST = "parallel_first"   # All parallel chunks, then singletons
    TASK_NUMBER = "task_number"         # Interleaved by task number


def _optional_float(name: str) -> Optional[float]:
    """Read an optional positive float; unset or empty means None."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class OrchestratorDefaults:
    """
    Defaults for the job lifecycle and cycle loop.
    """
    inter_cycle_delay_seconds: float = 2.0
    default_max_parallel_tasks: int = 3
    default_provider: str = "claude"
    working_branch_prefix: str = "orchestrator/"
    session_path_separator: str = "__"
    batch_ordering: BatchOrdering = BatchOrdering.PARALLEL_FIRST

    # How long shutdown waits for in-flight runners to wind down
    shutdown_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "OrchestratorDefaults":
        """Create from environment variables."""
        return cls(
            inter_cycle_delay_seconds=float(os.getenv("ORCHESTRATOR_INTER_CYCLE_DELAY_SEC", 2.0)),
            default_max_parallel_tasks=int(os.getenv("ORCHESTRATOR_DEFAULT_MAX_PARALLEL", 3)),
            default_provider=os.getenv("ORCHESTRATOR_DEFAULT_PROVIDER", "claude"),
            working_branch_prefix=os.getenv("ORCHESTRATOR_BRANCH_PREFIX", "orchestrator/"),
            batch_ordering=BatchOrdering(
                os.getenv("ORCHESTRATOR_BATCH_ORDERING", BatchOrdering.PARALLEL_FIRST.value)
            ),
            shutdown_timeout_seconds=float(os.getenv("ORCHESTRATOR_SHUTDOWN_TIMEOUT_SEC", 30.0)),
        )


@dataclass(frozen=True)
class CollaboratorDefaults:
    """
    Defaults for discoverer, executor and summarizer calls.

    A timeout of None means the call has no deadline.
    """
    discovery_timeout_seconds: Optional[float] = None
    execution_timeout_seconds: Optional[float] = None
    planning_timeout_seconds: Optional[float] = None

    # Default discoverer
    max_tasks_per_cycle: int = 10

    # Simulated executor
    simulated_step_count: int = 3
    simulated_step_delay_seconds: float = 1.0

    # Repository inspection (None disables it)
    workspace_root: Optional[str] = None
    recent_commit_count: int = 10
    file_tree_limit: int = 200

    @classmethod
    def from_env(cls) -> "CollaboratorDefaults":
        """Create from environment variables."""
        return cls(
            discovery_timeout_seconds=_optional_float("DISCOVERY_TIMEOUT_SEC"),
            execution_timeout_seconds=_optional_float("EXECUTION_TIMEOUT_SEC"),
            planning_timeout_seconds=_optional_float("PLANNING_TIMEOUT_SEC"),
            max_tasks_per_cycle=int(os.getenv("DISCOVERY_MAX_TASKS", 10)),
            simulated_step_count=int(os.getenv("SIMULATED_STEP_COUNT", 3)),
            simulated_step_delay_seconds=float(os.getenv("SIMULATED_STEP_DELAY_SEC", 1.0)),
            workspace_root=os.getenv("WORKSPACE_ROOT") or None,
        )


@dataclass(frozen=True)
class ApiDefaults:
    """
    Defaults for the HTTP surface.
    """
    default_list_limit: int = 20
    max_list_limit: int = 100
    stream_heartbeat_seconds: float = 30.0
    credential_env_var: str = "ANTHROPIC_API_KEY"

    @classmethod
    def from_env(cls) -> "ApiDefaults":
        """Create from environment variables."""
        return cls(
            default_list_limit=int(os.getenv("API_DEFAULT_LIST_LIMIT", 20)),
            max_list_limit=int(os.getenv("API_MAX_LIST_LIMIT", 100)),
            stream_heartbeat_seconds=float(os.getenv("API_STREAM_HEARTBEAT_SEC", 30.0)),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    orchestrator: OrchestratorDefaults = field(default_factory=OrchestratorDefaults)
    collaborators: CollaboratorDefaults = field(default_factory=CollaboratorDefaults)
    api: ApiDefaults = field(default_factory=ApiDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            orchestrator=OrchestratorDefaults.from_env(),
            collaborators=CollaboratorDefaults.from_env(),
            api=ApiDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BatchOrdering",
    "OrchestratorDefaults",
    "CollaboratorDefaults",
    "ApiDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]

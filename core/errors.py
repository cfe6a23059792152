# ============================================================================
# CLAUDE CONTEXT - ORCHESTRATOR ERRORS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Foundation - Exception taxonomy
# PURPOSE: Errors raised by lifecycle operations and mapped by the API
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OrchestratorError and subclasses
# ============================================================================
"""
Error classes for the cycle orchestrator.

Lifecycle operations raise these synchronously at the call site; job state
is left untouched when they are raised. The HTTP layer maps each class to a
status code.

Collaborator failures inside a running cycle are NOT wrapped: they propagate
as-is to the cycle loop, which records them on the job.
"""


class OrchestratorError(Exception):
    """Base exception for the orchestrator."""
    pass


class JobNotFoundError(OrchestratorError):
    """Raised when a job id does not exist in the store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class CycleNotFoundError(OrchestratorError):
    """Raised when a cycle number does not exist for a job."""

    def __init__(self, job_id: str, cycle_number: int):
        self.job_id = job_id
        self.cycle_number = cycle_number
        super().__init__(f"Cycle {cycle_number} not found for job {job_id}")


class InvalidJobStateError(OrchestratorError):
    """Raised when an operation is not valid for the job's current status."""

    def __init__(self, job_id: str, status: str, operation: str):
        self.job_id = job_id
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} job {job_id} with status: {status}")


class JobAlreadyRunningError(OrchestratorError):
    """Raised when a runner is already registered for the job."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job is already running: {job_id}")


class JobNotRunningError(OrchestratorError):
    """Raised when an operation needs an active runner and none exists."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job is not running: {job_id}")


class InvalidJobConfigError(OrchestratorError, ValueError):
    """Raised when job creation input fails validation."""
    pass


class JobAccessDeniedError(OrchestratorError):
    """Raised when a caller touches a job owned by someone else."""

    def __init__(self, job_id: str, owner_id: str):
        self.job_id = job_id
        self.owner_id = owner_id
        super().__init__(f"Access denied to job {job_id}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "OrchestratorError",
    "JobNotFoundError",
    "CycleNotFoundError",
    "InvalidJobStateError",
    "JobAlreadyRunningError",
    "JobNotRunningError",
    "InvalidJobConfigError",
    "JobAccessDeniedError",
]

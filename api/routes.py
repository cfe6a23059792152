# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for job lifecycle, inspection and event streams
# CREATED: 17 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the cycle orchestrator. Mounted under /api/v1.

The caller is identified by the X-Owner-Id header; a job is only visible
to its owner.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from core.config import Defaults, get_defaults
from core.errors import (
    CycleNotFoundError,
    InvalidJobConfigError,
    InvalidJobStateError,
    JobAccessDeniedError,
    JobAlreadyRunningError,
    JobNotFoundError,
    JobNotRunningError,
    OrchestratorError,
)
from core.models import EventType, Job, OrchestratorEvent
from .schemas import (
    CycleDetailResponse,
    CycleResponse,
    ErrorResponse,
    JobCreate,
    JobDetailResponse,
    JobListResponse,
    JobResponse,
    JobStartRequest,
    RequestDocumentUpdate,
    TaskListUpdate,
    TaskResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orchestrator", tags=["Orchestrator"])


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# These will be set by the main app at startup

_manager = None
_broadcaster = None
_defaults: Optional[Defaults] = None


def set_services(manager, broadcaster, defaults: Optional[Defaults] = None):
    """Set service instances for dependency injection."""
    global _manager, _broadcaster, _defaults
    _manager = manager
    _broadcaster = broadcaster
    _defaults = defaults


def get_manager():
    if _manager is None:
        raise HTTPException(500, "Services not initialized")
    return _manager


def get_broadcaster():
    if _broadcaster is None:
        raise HTTPException(500, "Event broadcaster not initialized")
    return _broadcaster


def _api_defaults():
    return (_defaults or get_defaults()).api


def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    """Caller identity from the X-Owner-Id header."""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(401, "X-Owner-Id header is required")
    return x_owner_id.strip()


# ============================================================================
# HELPERS
# ============================================================================

def _http_error(e: OrchestratorError) -> HTTPException:
    """Map lifecycle errors to HTTP status codes."""
    if isinstance(e, (JobNotFoundError, CycleNotFoundError)):
        return HTTPException(404, str(e))
    if isinstance(e, (JobAlreadyRunningError, JobNotRunningError, InvalidJobStateError)):
        return HTTPException(409, str(e))
    if isinstance(e, InvalidJobConfigError):
        return HTTPException(400, str(e))
    if isinstance(e, JobAccessDeniedError):
        return HTTPException(403, str(e))
    return HTTPException(500, str(e))


def _resolve_credential(credential: Optional[str]) -> str:
    """Request credential, else the server's environment."""
    resolved = credential or os.getenv(_api_defaults().credential_env_var)
    if not resolved:
        raise HTTPException(400, "No execution credential provided or configured")
    return resolved


def _job_response(job: Job) -> JobResponse:
    return JobResponse.model_validate(
        {**job.model_dump(), "is_running": get_manager().is_running(job.job_id)}
    )


async def _owned_job(job_id: str, owner_id: str) -> Job:
    """Load a job and check the caller owns it."""
    try:
        job = await get_manager().get_job(job_id)
    except OrchestratorError as e:
        raise _http_error(e)
    if job.owner_id != owner_id:
        raise _http_error(JobAccessDeniedError(job_id, owner_id))
    return job


_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    403: {"model": ErrorResponse, "description": "Not the job owner"},
    404: {"model": ErrorResponse, "description": "Job not found"},
    409: {"model": ErrorResponse, "description": "Invalid state for operation"},
}


# ============================================================================
# JOBS
# ============================================================================

@router.post("", response_model=JobResponse, status_code=201, responses=_ERRORS)
async def create_job(
    payload: Dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
):
    """
    Create a new job, optionally starting it.

    Returns immediately; follow GET /{job_id}/stream for progress.
    """
    try:
        request = JobCreate.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(400, str(e))

    manager = get_manager()
    credential = _resolve_credential(request.credential) if request.auto_start else None

    try:
        job = await manager.create_job(owner_id, request)
        if request.auto_start:
            job = await manager.start_job(job.job_id, credential)
    except OrchestratorError as e:
        raise _http_error(e)

    logger.info(f"Created job {job.job_id} for owner {owner_id} (auto_start={request.auto_start})")
    return _job_response(job)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    limit: Optional[int] = Query(None, ge=1),
    owner_id: str = Depends(get_owner_id),
):
    """List the caller's jobs, newest first."""
    defaults = _api_defaults()
    limit = min(limit or defaults.default_list_limit, defaults.max_list_limit)

    jobs = await get_manager().list_jobs(owner_id, limit)
    return JobListResponse(jobs=[_job_response(j) for j in jobs], total=len(jobs))


@router.get("/{job_id}", response_model=JobDetailResponse, responses=_ERRORS)
async def get_job(job_id: str, owner_id: str = Depends(get_owner_id)):
    """Job with its cycles in cycle order."""
    await _owned_job(job_id, owner_id)
    try:
        detail = await get_manager().get_job_with_cycles(job_id)
    except OrchestratorError as e:
        raise _http_error(e)

    return JobDetailResponse(
        job=_job_response(detail.job),
        cycles=[CycleResponse.model_validate(c, from_attributes=True) for c in detail.cycles],
    )


@router.get("/{job_id}/stream", responses=_ERRORS)
async def stream_job(job_id: str, request: Request, owner_id: str = Depends(get_owner_id)):
    """
    Server-sent events for one job.

    The stream ends after job_ended. For a job that is not running the
    stream carries a single heartbeat with the current status.
    """
    job = await _owned_job(job_id, owner_id)
    broadcaster = get_broadcaster()
    heartbeat_seconds = _api_defaults().stream_heartbeat_seconds

    async def event_stream():
        # Subscribed when the body starts streaming
        queue: asyncio.Queue = asyncio.Queue()
        active = broadcaster.is_active(job_id)
        subscription_id = broadcaster.subscribe(job_id, queue.put_nowait) if active else None
        try:
            yield OrchestratorEvent(
                type=EventType.HEARTBEAT,
                job_id=job_id,
                data={"status": job.status.value, "active": active},
            ).to_sse()
            if not active:
                return

            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
                except asyncio.TimeoutError:
                    event = OrchestratorEvent(type=EventType.HEARTBEAT, job_id=job_id)
                yield event.to_sse()
                if event.type == EventType.JOB_ENDED:
                    break
        finally:
            if subscription_id is not None:
                broadcaster.unsubscribe(job_id, subscription_id)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# ============================================================================
# RUN CONTROL
# ============================================================================

@router.post("/{job_id}/start", response_model=JobResponse, responses=_ERRORS)
async def start_job(
    job_id: str,
    request: Optional[JobStartRequest] = None,
    owner_id: str = Depends(get_owner_id),
):
    """Start a pending job. Returns once the runner is launched."""
    await _owned_job(job_id, owner_id)
    credential = _resolve_credential(request.credential if request else None)
    try:
        job = await get_manager().start_job(job_id, credential)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)


@router.post("/{job_id}/pause", response_model=JobResponse, responses=_ERRORS)
async def pause_job(job_id: str, owner_id: str = Depends(get_owner_id)):
    """Stop the job after its in-flight phase."""
    await _owned_job(job_id, owner_id)
    try:
        job = await get_manager().pause_job(job_id)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)


@router.post("/{job_id}/resume", response_model=JobResponse, responses=_ERRORS)
async def resume_job(
    job_id: str,
    request: Optional[JobStartRequest] = None,
    owner_id: str = Depends(get_owner_id),
):
    """Resume a paused job at its next cycle."""
    await _owned_job(job_id, owner_id)
    credential = _resolve_credential(request.credential if request else None)
    try:
        job = await get_manager().resume_job(job_id, credential)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)


@router.post("/{job_id}/cancel", response_model=JobResponse, responses=_ERRORS)
async def cancel_job(job_id: str, owner_id: str = Depends(get_owner_id)):
    """Cancel the job, waiting for its runner to stop."""
    await _owned_job(job_id, owner_id)
    try:
        job = await get_manager().cancel_job(job_id)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)


# ============================================================================
# CYCLES
# ============================================================================

@router.get("/{job_id}/cycles", response_model=List[CycleResponse], responses=_ERRORS)
async def list_cycles(job_id: str, owner_id: str = Depends(get_owner_id)):
    """Cycles in cycle order."""
    await _owned_job(job_id, owner_id)
    detail = await get_manager().get_job_with_cycles(job_id)
    return [CycleResponse.model_validate(c, from_attributes=True) for c in detail.cycles]


@router.get("/{job_id}/cycles/{cycle_number}", response_model=CycleDetailResponse, responses=_ERRORS)
async def get_cycle(job_id: str, cycle_number: int, owner_id: str = Depends(get_owner_id)):
    """One cycle with its tasks in task order."""
    await _owned_job(job_id, owner_id)
    try:
        detail = await get_manager().get_cycle_with_tasks(job_id, cycle_number)
    except OrchestratorError as e:
        raise _http_error(e)

    return CycleDetailResponse(
        cycle=CycleResponse.model_validate(detail.cycle, from_attributes=True),
        tasks=[TaskResponse.model_validate(t, from_attributes=True) for t in detail.tasks],
    )


# ============================================================================
# DOCUMENTS
# ============================================================================

@router.put("/{job_id}/request-document", response_model=JobResponse, responses=_ERRORS)
async def update_request_document(
    job_id: str,
    request: RequestDocumentUpdate,
    owner_id: str = Depends(get_owner_id),
):
    """Replace the job's goal document."""
    await _owned_job(job_id, owner_id)
    try:
        job = await get_manager().update_request_document(job_id, request.request_document)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)


@router.put("/{job_id}/task-list", response_model=JobResponse, responses=_ERRORS)
async def update_task_list(
    job_id: str,
    request: TaskListUpdate,
    owner_id: str = Depends(get_owner_id),
):
    """Replace the job's living plan."""
    await _owned_job(job_id, owner_id)
    try:
        job = await get_manager().update_task_list(job_id, request.task_list)
    except OrchestratorError as e:
        raise _http_error(e)
    return _job_response(job)

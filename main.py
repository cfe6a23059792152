# ============================================================================
# CYCLE ORCHESTRATOR - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire store, collaborators and lifecycle manager behind the HTTP API
# CREATED: 17 OCT 2026
# ============================================================================
"""
Cycle Orchestrator Main Application

FastAPI application that:
1. Provides the HTTP API for job management and event streams
2. Hosts the per-job cycle loops as background asyncio tasks
3. Pauses running jobs on shutdown so they can be resumed later

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE, EPOCH
from core.config import get_defaults
from repositories import JobStore, close_pool, init_pool
from services import (
    EventBroadcaster,
    ExecutorRegistry,
    MarkdownPlanUpdater,
    RepositoryInspector,
    SimulatedTaskExecutor,
    TaskListDiscoverer,
)
from orchestrator import JobLifecycleManager
from api.routes import router, set_services

# Configure logging using our structured logging system
from core.logging import configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)

# Global instances
_manager: JobLifecycleManager = None


def build_manager(store, defaults=None, broadcaster=None) -> JobLifecycleManager:
    """Assemble the lifecycle manager with the default collaborators."""
    defaults = defaults or get_defaults()
    collab = defaults.collaborators

    executors = ExecutorRegistry()
    executors.register(
        defaults.orchestrator.default_provider,
        SimulatedTaskExecutor(
            step_count=collab.simulated_step_count,
            step_delay_seconds=collab.simulated_step_delay_seconds,
        ),
    )

    inspector = None
    if collab.workspace_root:
        inspector = RepositoryInspector(
            collab.workspace_root,
            recent_commit_count=collab.recent_commit_count,
            file_tree_limit=collab.file_tree_limit,
        )

    return JobLifecycleManager(
        store,
        discoverer=TaskListDiscoverer(max_tasks=collab.max_tasks_per_cycle),
        planner=MarkdownPlanUpdater(),
        executors=executors,
        events=broadcaster or EventBroadcaster(),
        inspector=inspector,
        defaults=defaults,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, pauses running jobs on shutdown.
    """
    global _manager

    logger.info(f"Starting Cycle Orchestrator v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")
    defaults = get_defaults()

    # Initialize database pool
    pool = await init_pool()
    logger.info("Database pool initialized")

    store = JobStore.from_pool(pool)
    broadcaster = EventBroadcaster()
    _manager = build_manager(store, defaults, broadcaster)

    # Set services for API routes
    set_services(_manager, broadcaster, defaults)
    logger.info("Orchestrator ready")

    yield

    # Shutdown
    logger.info("Shutting down Cycle Orchestrator...")

    await _manager.shutdown()
    await close_pool()

    logger.info("Cycle Orchestrator stopped")


# Create FastAPI app
app = FastAPI(
    title="Cycle Orchestrator",
    description=f"Epoch {EPOCH} multi-cycle coding job orchestration",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Cycle Orchestrator",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "active_jobs": len(_manager.registry) if _manager else 0,
        "docs": "/docs",
    }


@app.get("/livez")
async def liveness_probe():
    """
    Liveness probe. No external checks - just confirms the process is responsive.
    """
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )

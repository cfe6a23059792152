# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for job management
# CREATED: 17 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the cycle orchestrator.
"""

from .routes import router, set_services
from .schemas import (
    JobCreate,
    JobResponse,
    CycleResponse,
    TaskResponse,
)

__all__ = [
    "router",
    "set_services",
    "JobCreate",
    "JobResponse",
    "CycleResponse",
    "TaskResponse",
]

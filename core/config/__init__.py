# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 17 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the cycle orchestrator.
"""

from core.config.defaults import (
    BatchOrdering,
    OrchestratorDefaults,
    CollaboratorDefaults,
    ApiDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "BatchOrdering",
    "OrchestratorDefaults",
    "CollaboratorDefaults",
    "ApiDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]

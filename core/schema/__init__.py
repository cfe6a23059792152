# ============================================================================
# CLAUDE CONTEXT - SCHEMA MODULE
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Schema generation from Pydantic models
# PURPOSE: Generate PostgreSQL DDL from Pydantic models (single source of truth)
# LAST_REVIEWED: 17 OCT 2026
# ============================================================================

from core.schema.ddl_utils import IndexBuilder, TriggerBuilder, SchemaUtils
from core.schema.sql_generator import PydanticToSQL, SCHEMA_NAME

__all__ = [
    "PydanticToSQL",
    "SCHEMA_NAME",
    "IndexBuilder",
    "TriggerBuilder",
    "SchemaUtils",
]

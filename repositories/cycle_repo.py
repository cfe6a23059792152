# ============================================================================
# CYCLE REPOSITORY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Cycle CRUD operations
# PURPOSE: Database access for orchestrator_cycles table
# CREATED: 17 OCT 2026
# ============================================================================
"""
Cycle Repository

Cycles are append-only per job; counters and phase are updated in place
by the engine that created the row.
"""

import logging
from typing import Any, List, Optional

from psycopg import sql

from core.models import Cycle
from .base import PostgresRepository
from .database import TABLE_CYCLES

logger = logging.getLogger(__name__)


class CycleRepository(PostgresRepository[Cycle]):
    """Repository for Cycle entities."""

    model = Cycle
    table = TABLE_CYCLES
    key_column = "cycle_id"

    async def create(self, cycle: Cycle) -> Cycle:
        await self._insert(cycle)
        logger.debug(f"Created cycle {cycle.cycle_number} ({cycle.cycle_id}) for job {cycle.job_id}")
        return cycle

    async def update(self, cycle_id: str, **fields: Any) -> bool:
        return await self.update_fields(cycle_id, **fields)

    async def get_by_number(self, job_id: str, cycle_number: int) -> Optional[Cycle]:
        return await self._fetch_one(
            sql.SQL("job_id = %(job_id)s AND cycle_number = %(cycle_number)s"),
            {"job_id": job_id, "cycle_number": cycle_number},
        )

    async def list_by_job(self, job_id: str) -> List[Cycle]:
        """All cycles of a job, cycle_number ascending."""
        return await self._fetch_all(
            sql.SQL("job_id = %(job_id)s"),
            {"job_id": job_id},
            order_by=sql.SQL("cycle_number ASC"),
        )

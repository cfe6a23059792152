# ============================================================================
# JOB REPOSITORY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Job CRUD operations
# PURPOSE: Database access for orchestrator_jobs table
# CREATED: 17 OCT 2026
# ============================================================================
"""
Job Repository

CRUD operations for orchestrator jobs.
"""

import logging
from typing import Any, List

from psycopg import sql

from core.contracts import utc_now
from core.models import Job
from .base import PostgresRepository
from .database import TABLE_JOBS

logger = logging.getLogger(__name__)


class JobRepository(PostgresRepository[Job]):
    """Repository for Job entities."""

    model = Job
    table = TABLE_JOBS
    key_column = "job_id"

    async def create(self, job: Job) -> Job:
        """Persist a new job."""
        await self._insert(job)
        logger.info(
            f"Created job {job.job_id} for "
            f"{job.repository_owner}/{job.repository_name}"
        )
        return job

    async def update(self, job_id: str, **fields: Any) -> bool:
        """Partial update; always touches updated_at."""
        fields.setdefault("updated_at", utc_now())
        return await self.update_fields(job_id, **fields)

    async def record_error(self, job_id: str, message: str) -> bool:
        """
        Move a job to ERROR, incrementing error_count in the same statement.
        """
        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("""
                UPDATE {}
                SET status = 'error',
                    last_error = %s,
                    error_count = error_count + 1,
                    updated_at = %s
                WHERE job_id = %s
                """).format(TABLE_JOBS),
                (message[:4000], utc_now(), job_id),
            )
            return result.rowcount > 0

    async def list_by_owner(self, owner_id: str, limit: int = 20) -> List[Job]:
        """Jobs for one owner, newest first."""
        return await self._fetch_all(
            sql.SQL("owner_id = %(owner_id)s"),
            {"owner_id": owner_id},
            order_by=sql.SQL("created_at DESC"),
            limit=limit,
        )

# ============================================================================
# TASK REPOSITORY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Task CRUD operations
# PURPOSE: Database access for orchestrator_tasks table
# CREATED: 17 OCT 2026
# ============================================================================
"""
Task Repository

Tasks are inserted in one batch when discovery completes and then updated
individually as the scheduler settles each one.
"""

import logging
from typing import Any, List

from psycopg import sql
from psycopg.rows import dict_row

from core.models import Task
from .base import PostgresRepository
from .database import TABLE_TASKS

logger = logging.getLogger(__name__)


class TaskRepository(PostgresRepository[Task]):
    """Repository for Task entities."""

    model = Task
    table = TABLE_TASKS
    key_column = "task_id"

    async def create_many(self, tasks: List[Task]) -> List[Task]:
        await self._insert_many(tasks)
        if tasks:
            logger.debug(f"Created {len(tasks)} tasks for cycle {tasks[0].cycle_id}")
        return tasks

    async def update(self, task_id: str, **fields: Any) -> bool:
        return await self.update_fields(task_id, **fields)

    async def list_by_cycle(self, cycle_id: str) -> List[Task]:
        """All tasks of a cycle, task_number ascending."""
        return await self._fetch_all(
            sql.SQL("cycle_id = %(cycle_id)s"),
            {"cycle_id": cycle_id},
            order_by=sql.SQL("task_number ASC"),
        )

    async def count_by_job(self, job_id: str) -> int:
        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("SELECT COUNT(*) AS count FROM {} WHERE job_id = %s").format(TABLE_TASKS),
                    (job_id,),
                )
                row = await cur.fetchone()
                return row["count"] if row else 0

# ============================================================================
# REPOSITORY TESTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Tests - PostgreSQL repositories against a fake pool
# PURPOSE: Verify row mapping, ordering, counts and partial-update guards
# CREATED: 17 OCT 2026
# ============================================================================
"""
Repository Tests

No database: the pool hands out one shared fake connection, the way a
pooled connection is reused across calls. Rows come back as tuples unless
the cursor (or connection) row_factory is dict_row, so a repository that
leaves a row factory behind on the connection breaks the next caller.

Run with:
    pytest tests/test_repositories.py -v
"""

import asyncio
import pytest
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row, tuple_row
from psycopg.types.json import Json

from core.contracts import JobStatus, TaskStatus
from repositories import CycleRepository, JobRepository, JobStore, TaskRepository
from repositories.base import to_db_value
from repositories.database import get_connection_string
from fakes import make_cycle, make_job, make_tasks


class FakeCursor:

    def __init__(self, conn: "FakeConnection", row_factory):
        self.conn = conn
        self.row_factory = row_factory
        self.rowcount = -1
        self._rows: List[Dict[str, Any]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params=None):
        self.conn.executed.append((_render(query), params))
        self._rows = self.conn.results.pop(0) if self.conn.results else []
        self.rowcount = self.conn.rowcount
        return self

    async def executemany(self, query, params_seq):
        params_seq = list(params_seq)
        self.conn.executed.append((_render(query), params_seq))
        self.rowcount = len(params_seq)

    def _shape(self, row: Dict[str, Any]):
        return dict(row) if self.row_factory is dict_row else tuple(row.values())

    async def fetchone(self):
        return self._shape(self._rows[0]) if self._rows else None

    async def fetchall(self):
        return [self._shape(row) for row in self._rows]


class FakeConnection:

    def __init__(self, results: Optional[List[List[Dict[str, Any]]]] = None, rowcount: int = 1):
        self.row_factory = tuple_row
        self.results = list(results or [])
        self.rowcount = rowcount
        self.executed: List[tuple] = []

    def cursor(self, row_factory=None):
        return FakeCursor(self, row_factory or self.row_factory)

    async def execute(self, query, params=None):
        return await FakeCursor(self, self.row_factory).execute(query, params)


class FakePool:

    def __init__(self, conn: FakeConnection):
        self.conn = conn

    @asynccontextmanager
    async def connection(self):
        yield self.conn


def _render(query) -> str:
    return query.as_string(None) if isinstance(query, sql.Composable) else query


def _pool(*results, rowcount=1):
    conn = FakeConnection(list(results), rowcount=rowcount)
    return FakePool(conn), conn


class TestValueAdaptation:

    def test_enum_by_value(self):
        assert to_db_value(JobStatus.PAUSED) == "paused"

    def test_list_as_json(self):
        assert isinstance(to_db_value(["a.py"]), Json)

    def test_plain_values_untouched(self):
        assert to_db_value(3) == 3
        assert to_db_value(None) is None


# ============================================================================
# READS
# ============================================================================

class TestRowMapping:

    def test_get_maps_row_to_model(self):
        job = make_job()
        pool, conn = _pool([job.model_dump()])

        loaded = asyncio.run(JobRepository(pool).get(job.job_id))

        assert loaded == job
        assert conn.executed[0][1] == {"key": job.job_id}
        assert conn.row_factory is tuple_row

    def test_get_missing(self):
        pool, _ = _pool([])
        assert asyncio.run(JobRepository(pool).get("nope")) is None

    def test_count_after_fetch_on_same_connection(self):
        job = make_job()
        pool, conn = _pool([job.model_dump()], [{"count": 3}])

        async def run():
            await JobRepository(pool).get(job.job_id)
            return await TaskRepository(pool).count_by_job(job.job_id)

        assert asyncio.run(run()) == 3
        assert conn.row_factory is tuple_row
        assert "COUNT(*) AS count" in conn.executed[1][0]

    def test_count_with_no_tasks(self):
        pool, _ = _pool([{"count": 0}])
        assert asyncio.run(TaskRepository(pool).count_by_job("job-1")) == 0

    def test_list_by_cycle_orders_by_task_number(self):
        cycle = make_cycle(make_job())
        tasks = make_tasks(cycle, True, False, True)
        tasks[1].status = TaskStatus.FAILED
        pool, conn = _pool([t.model_dump() for t in tasks])

        loaded = asyncio.run(TaskRepository(pool).list_by_cycle(cycle.cycle_id))

        assert [t.task_number for t in loaded] == [1, 2, 3]
        assert loaded[1].status == TaskStatus.FAILED
        assert loaded[1].can_run_parallel is False
        query, params = conn.executed[0]
        assert query.endswith("ORDER BY task_number ASC")
        assert params == {"cycle_id": cycle.cycle_id}

    def test_list_by_job_orders_by_cycle_number(self):
        job = make_job()
        cycles = [make_cycle(job, 1), make_cycle(job, 2)]
        pool, conn = _pool([c.model_dump() for c in cycles])

        loaded = asyncio.run(CycleRepository(pool).list_by_job(job.job_id))

        assert [c.cycle_number for c in loaded] == [1, 2]
        assert conn.executed[0][0].endswith("ORDER BY cycle_number ASC")

    def test_get_by_number(self):
        job = make_job()
        cycle = make_cycle(job, 4)
        pool, conn = _pool([cycle.model_dump()])

        loaded = asyncio.run(CycleRepository(pool).get_by_number(job.job_id, 4))

        assert loaded.cycle_id == cycle.cycle_id
        assert conn.executed[0][1] == {"job_id": job.job_id, "cycle_number": 4}

    def test_list_by_owner_is_limited(self):
        pool, conn = _pool([make_job().model_dump()])

        loaded = asyncio.run(JobRepository(pool).list_by_owner("owner-1", limit=5))

        assert len(loaded) == 1
        query = conn.executed[0][0]
        assert "ORDER BY created_at DESC" in query
        assert query.endswith("LIMIT 5")


# ============================================================================
# WRITES
# ============================================================================

class TestWrites:

    def test_create_many_sends_one_batch(self):
        tasks = make_tasks(make_cycle(make_job()), True, True)
        tasks[0].files_modified = ["src/app.py"]
        pool, conn = _pool()

        asyncio.run(TaskRepository(pool).create_many(tasks))

        (query, params), = conn.executed
        assert query.startswith("INSERT INTO")
        assert len(params) == 2
        assert isinstance(params[0]["files_modified"], Json)
        assert params[0]["status"] == "pending"

    def test_update_touches_updated_at(self):
        pool, conn = _pool()
        updated = asyncio.run(JobRepository(pool).update("job-1", status=JobStatus.RUNNING))
        params = conn.executed[0][1]

        assert updated is True
        assert params["status"] == "running"
        assert "updated_at" in params
        assert params["__key"] == "job-1"

    def test_update_rejects_unknown_columns(self):
        pool, conn = _pool()
        with pytest.raises(ValueError, match="nonsense"):
            asyncio.run(JobRepository(pool).update("job-1", nonsense=1))
        assert conn.executed == []

    def test_update_missing_row(self):
        pool, _ = _pool(rowcount=0)
        assert asyncio.run(JobRepository(pool).update("job-1", current_cycle=2)) is False

    def test_record_error_truncates(self):
        pool, conn = _pool()
        asyncio.run(JobRepository(pool).record_error("job-1", "x" * 5000))

        message, _, job_id = conn.executed[0][1]
        assert len(message) == 4000
        assert job_id == "job-1"


class TestStoreAndConnection:

    def test_store_from_pool(self):
        pool, _ = _pool()
        store = JobStore.from_pool(pool)
        assert store.jobs.pool is pool
        assert store.cycles.pool is pool
        assert store.tasks.pool is pool

    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/orch")
        assert get_connection_string() == "postgresql://u:p@db:5432/orch"

    def test_components(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "pg")
        monkeypatch.setenv("POSTGRES_USER", "orch")
        monkeypatch.setenv("POSTGRES_PASSWORD", "secret")
        monkeypatch.setenv("POSTGRES_DB", "jobs")
        monkeypatch.setenv("POSTGRES_SSLMODE", "disable")
        monkeypatch.delenv("POSTGRES_PORT", raising=False)
        assert get_connection_string() == "postgresql://orch:secret@pg:5432/jobs?sslmode=disable"

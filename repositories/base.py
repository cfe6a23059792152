# ============================================================================
# BASE REPOSITORY
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Shared row mapping and partial updates
# PURPOSE: Common INSERT / SELECT / UPDATE plumbing for the three tables
# CREATED: 17 OCT 2026
# ============================================================================
"""
Base Repository

Every write the orchestrator makes is a single-row operation scoped by
primary key, so the shared surface is small: insert a model, fetch rows
into models, and update a subset of columns.
"""

import logging
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool
from pydantic import BaseModel

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def to_db_value(value: Any) -> Any:
    """Adapt a Python value for psycopg (enums by value, lists/dicts as JSONB)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, dict)):
        return Json(value)
    return value


class PostgresRepository(Generic[ModelT]):
    """
    Repository over one table whose columns mirror a Pydantic model.

    Subclasses set model, table and key_column.
    """

    model: ClassVar[Type[BaseModel]]
    table: ClassVar[sql.Identifier]
    key_column: ClassVar[str]

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    @property
    def columns(self) -> List[str]:
        return list(self.model.model_fields.keys())

    def _row_to_model(self, row: Dict[str, Any]) -> ModelT:
        return self.model.model_validate(row)

    async def _insert(self, item: ModelT) -> ModelT:
        await self._insert_many([item])
        return item

    async def _insert_many(self, items: Iterable[ModelT]) -> None:
        items = list(items)
        if not items:
            return

        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            self.table,
            sql.SQL(", ").join(sql.Identifier(c) for c in self.columns),
            sql.SQL(", ").join(sql.Placeholder(c) for c in self.columns),
        )
        params = [
            {c: to_db_value(getattr(item, c)) for c in self.columns}
            for item in items
        ]

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(query, params)

    async def _fetch_one(self, where: sql.Composable, params: Dict[str, Any]) -> Optional[ModelT]:
        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("SELECT * FROM {} WHERE {}").format(self.table, where),
                    params,
                )
                row = await cur.fetchone()
                return self._row_to_model(row) if row else None

    async def _fetch_all(
        self,
        where: sql.Composable,
        params: Dict[str, Any],
        order_by: sql.Composable,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        query = sql.SQL("SELECT * FROM {} WHERE {} ORDER BY {}").format(self.table, where, order_by)
        if limit is not None:
            query = sql.SQL("{} LIMIT {}").format(query, sql.Literal(limit))

        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
                return [self._row_to_model(row) for row in rows]

    async def get(self, key: str) -> Optional[ModelT]:
        return await self._fetch_one(
            sql.SQL("{} = %(key)s").format(sql.Identifier(self.key_column)),
            {"key": key},
        )

    async def update_fields(self, key: str, **fields: Any) -> bool:
        """
        Update a subset of columns on one row.

        Returns:
            True if a row was updated
        """
        unknown = set(fields) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown columns for {self.model.__name__}: {sorted(unknown)}")
        if not fields:
            return False

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder(name))
            for name in fields
        )
        params = {name: to_db_value(value) for name, value in fields.items()}
        params["__key"] = key

        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("UPDATE {} SET {} WHERE {} = %(__key)s").format(
                    self.table, assignments, sql.Identifier(self.key_column)
                ),
                params,
            )
            if result.rowcount == 0:
                logger.warning(f"No {self.model.__name__} row updated for {key}")
            return result.rowcount > 0

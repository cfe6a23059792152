# ============================================================================
# CLAUDE CONTEXT - DDL UTILITIES
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - Builders for SQL DDL generation
# PURPOSE: Index, trigger and schema builders using psycopg.sql
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: IndexBuilder, TriggerBuilder, SchemaUtils
# DEPENDENCIES: psycopg
# ============================================================================
"""
DDL Utilities

All builders return psycopg.sql.Composed objects; identifiers are always
composed, never concatenated.

Usage:
    from core.schema.ddl_utils import IndexBuilder, TriggerBuilder

    idx = IndexBuilder.btree("orchestrator", "orchestrator_jobs", ["status"])
    cursor.execute(idx)
"""

from typing import List, Optional, Sequence, Union
from psycopg import sql


def _columns(columns: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(columns, str):
        return [columns]
    return list(columns)


# ============================================================================
# INDEX BUILDER
# ============================================================================

class IndexBuilder:
    """Builder for CREATE INDEX statements."""

    @staticmethod
    def _default_name(table: str, columns: List[str], prefix: str) -> str:
        # PostgreSQL truncates identifiers at 63 chars
        return f"{prefix}_{table}_{'_'.join(columns)}"[:63]

    @staticmethod
    def btree(
        schema: str,
        table: str,
        columns: Union[str, Sequence[str]],
        name: Optional[str] = None,
        partial_where: Optional[str] = None,
        descending: bool = False,
    ) -> sql.Composed:
        """B-tree index, optionally partial or descending."""
        cols = _columns(columns)
        order = sql.SQL(" DESC") if descending else sql.SQL("")
        stmt = sql.SQL(
            "CREATE INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})"
        ).format(
            name=sql.Identifier(name or IndexBuilder._default_name(table, cols, "idx")),
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(
                sql.SQL("{}{}").format(sql.Identifier(c), order) for c in cols
            ),
        )
        if partial_where:
            stmt = sql.SQL("{} WHERE {}").format(stmt, sql.SQL(partial_where))
        return stmt

    @staticmethod
    def unique(
        schema: str,
        table: str,
        columns: Union[str, Sequence[str]],
        name: Optional[str] = None,
    ) -> sql.Composed:
        """Unique index; used for per-parent numbering columns."""
        cols = _columns(columns)
        return sql.SQL(
            "CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})"
        ).format(
            name=sql.Identifier(name or IndexBuilder._default_name(table, cols, "uq")),
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        )


# ============================================================================
# TRIGGER BUILDER
# ============================================================================

class TriggerBuilder:
    """Builder for the updated_at maintenance trigger."""

    @staticmethod
    def updated_at_function(schema: str) -> sql.Composed:
        return sql.SQL("""
            CREATE OR REPLACE FUNCTION {schema}.touch_updated_at()
            RETURNS TRIGGER
            LANGUAGE plpgsql
            AS $$
            BEGIN
                NEW.updated_at = NOW();
                RETURN NEW;
            END;
            $$
        """).format(schema=sql.Identifier(schema))

    @staticmethod
    def updated_at_trigger(schema: str, table: str) -> List[sql.Composed]:
        """DROP + CREATE so redeploys are idempotent."""
        name = sql.Identifier(f"trg_{table}_updated_at")
        target = sql.SQL("{}.{}").format(sql.Identifier(schema), sql.Identifier(table))
        return [
            sql.SQL("DROP TRIGGER IF EXISTS {} ON {}").format(name, target),
            sql.SQL("""
                CREATE TRIGGER {name}
                BEFORE UPDATE ON {target}
                FOR EACH ROW
                EXECUTE FUNCTION {schema}.touch_updated_at()
            """).format(name=name, target=target, schema=sql.Identifier(schema)),
        ]


# ============================================================================
# SCHEMA UTILITIES
# ============================================================================

class SchemaUtils:
    """Schema-level statements."""

    @staticmethod
    def create_schema(schema: str) -> sql.Composed:
        return sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))

    @staticmethod
    def drop_schema(schema: str) -> sql.Composed:
        return sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(sql.Identifier(schema))

    @staticmethod
    def set_search_path(schema: str) -> sql.Composed:
        return sql.SQL("SET search_path TO {}, public").format(sql.Identifier(schema))


__all__ = ["IndexBuilder", "TriggerBuilder", "SchemaUtils"]

# ============================================================================
# CLAUDE CONTEXT - PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: Generate PostgreSQL CREATE statements from Pydantic models
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: PydanticToSQL, SCHEMA_NAME
# DEPENDENCIES: pydantic, psycopg
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

Pydantic models are the SINGLE SOURCE OF TRUTH for the schema.

Model Metadata Convention:
    - __sql_table__: Table name
    - __sql_schema__: Schema name
    - __sql_primary_key__: Primary key column(s)
    - __sql_foreign_keys__: Dict of {column: "schema.table(column)"}
    - __sql_indexes__: List of (name, columns[, partial_where])
    - __sql_unique__: List of (name, columns)

Usage:
    generator = PydanticToSQL()
    for stmt in generator.generate_all():
        cursor.execute(stmt)
"""

import re
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Type, Union, get_args, get_origin

from annotated_types import MaxLen
from psycopg import sql
from pydantic import BaseModel
from pydantic.fields import FieldInfo

from core.schema.ddl_utils import IndexBuilder, TriggerBuilder, SchemaUtils

logger = logging.getLogger(__name__)

SCHEMA_NAME = "orchestrator"


def _enum_type_name(enum_class: Type[Enum]) -> str:
    """JobStatus -> job_status"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", enum_class.__name__).lower()


class PydanticToSQL:
    """
    Generate PostgreSQL DDL from Pydantic models carrying __sql_* metadata.
    """

    TYPE_MAP = {
        str: "TEXT",
        int: "INTEGER",
        float: "DOUBLE PRECISION",
        bool: "BOOLEAN",
        datetime: "TIMESTAMPTZ",
    }

    def __init__(self, schema_name: str = SCHEMA_NAME, destructive: bool = False):
        """
        Args:
            schema_name: PostgreSQL schema name
            destructive: If True, drop the schema first (development rebuild)
        """
        self.schema_name = schema_name
        self.destructive = destructive
        self.enums: Dict[str, Type[Enum]] = {}

    # =========================================================================
    # METADATA EXTRACTION
    # =========================================================================

    @staticmethod
    def get_model_metadata(model: Type[BaseModel]) -> Dict[str, Any]:
        """
        Read the __sql_* ClassVars (dunder names, so never mangled).
        """
        def get_attr(name: str, default=None):
            return getattr(model, f"__{name}", default)

        primary_key = get_attr("sql_primary_key__", [])
        if isinstance(primary_key, str):
            primary_key = [primary_key]

        return {
            "table": get_attr("sql_table__"),
            "schema": get_attr("sql_schema__", SCHEMA_NAME),
            "primary_key": primary_key,
            "foreign_keys": get_attr("sql_foreign_keys__", {}),
            "indexes": get_attr("sql_indexes__", []),
            "unique": get_attr("sql_unique__", []),
        }

    # =========================================================================
    # TYPE CONVERSION
    # =========================================================================

    def python_type_to_sql(self, field_type: Any, field_info: FieldInfo) -> str:
        """Map a field annotation to a PostgreSQL column type."""
        actual_type = field_type
        origin = get_origin(field_type)

        if origin is Union:
            args = [a for a in get_args(field_type) if a is not type(None)]
            actual_type = args[0]
            origin = get_origin(actual_type)

        if origin in (dict, list) or actual_type in (dict, list):
            return "JSONB"

        if actual_type is str:
            for constraint in field_info.metadata or []:
                if isinstance(constraint, MaxLen):
                    return f"VARCHAR({constraint.max_length})"
            return "TEXT"

        if isinstance(actual_type, type) and issubclass(actual_type, Enum):
            enum_name = _enum_type_name(actual_type)
            self.enums[enum_name] = actual_type
            return enum_name

        return self.TYPE_MAP.get(actual_type, "JSONB")

    @staticmethod
    def _is_optional(field_type: Any) -> bool:
        return get_origin(field_type) is Union and type(None) in get_args(field_type)

    # =========================================================================
    # STATEMENT GENERATION
    # =========================================================================

    def generate_enum(self, enum_name: str, enum_class: Type[Enum]) -> sql.Composed:
        """CREATE TYPE guarded by a DO block so redeploys are safe."""
        values = ", ".join(f"'{member.value}'" for member in enum_class)
        return sql.SQL(f"""
DO $$
BEGIN
    IF NOT EXISTS (
        SELECT 1 FROM pg_type t JOIN pg_namespace n ON n.oid = t.typnamespace
        WHERE t.typname = '{enum_name}' AND n.nspname = '{self.schema_name}'
    ) THEN
        CREATE TYPE "{self.schema_name}"."{enum_name}" AS ENUM ({values});
    END IF;
END$$
""")

    def _column(self, name: str, field_info: FieldInfo, schema: str, primary_key: List[str]) -> sql.Composed:
        sql_type = self.python_type_to_sql(field_info.annotation, field_info)
        parts: List[sql.Composable] = [sql.Identifier(name), sql.SQL(" ")]

        if sql_type in self.enums:
            parts.append(sql.SQL("{}.{}").format(sql.Identifier(schema), sql.Identifier(sql_type)))
        else:
            parts.append(sql.SQL(sql_type))

        if not self._is_optional(field_info.annotation) and name not in primary_key:
            parts.append(sql.SQL(" NOT NULL"))

        default = field_info.default
        if isinstance(default, Enum):
            parts.append(sql.SQL(" DEFAULT {}").format(sql.Literal(default.value)))
        elif isinstance(default, bool):
            parts.append(sql.SQL(" DEFAULT true" if default else " DEFAULT false"))
        elif isinstance(default, (int, float, str)):
            parts.append(sql.SQL(" DEFAULT {}").format(sql.Literal(default)))
        elif field_info.default_factory is not None:
            if name in ("created_at", "updated_at"):
                parts.append(sql.SQL(" DEFAULT NOW()"))
            elif sql_type == "JSONB":
                parts.append(sql.SQL(" DEFAULT '[]'::jsonb"))

        return sql.Composed(parts)

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """CREATE TABLE IF NOT EXISTS for one model."""
        meta = self.get_model_metadata(model)
        if not meta["table"]:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")

        schema = meta["schema"]
        primary_key = meta["primary_key"]

        items: List[sql.Composable] = [
            self._column(name, info, schema, primary_key)
            for name, info in model.model_fields.items()
        ]

        if primary_key:
            items.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in primary_key)
            ))

        for column, reference in meta["foreign_keys"].items():
            match = re.match(r"(\w+)\.(\w+)\((\w+)\)", reference)
            if not match:
                raise ValueError(f"Bad foreign key reference on {model.__name__}.{column}: {reference}")
            ref_schema, ref_table, ref_column = match.groups()
            items.append(sql.SQL("FOREIGN KEY ({}) REFERENCES {}.{} ({}) ON DELETE CASCADE").format(
                sql.Identifier(column),
                sql.Identifier(ref_schema),
                sql.Identifier(ref_table),
                sql.Identifier(ref_column),
            ))

        logger.debug(f"Generating table {schema}.{meta['table']} from {model.__name__}")
        return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(schema),
            sql.Identifier(meta["table"]),
            sql.SQL(", ").join(items),
        )

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """CREATE INDEX / CREATE UNIQUE INDEX statements for one model."""
        meta = self.get_model_metadata(model)
        statements = []
        for idx in meta["indexes"]:
            name, columns = idx[0], idx[1]
            partial_where = idx[2] if len(idx) > 2 else None
            statements.append(IndexBuilder.btree(
                meta["schema"], meta["table"], columns, name=name, partial_where=partial_where
            ))
        for name, columns in meta["unique"]:
            statements.append(IndexBuilder.unique(meta["schema"], meta["table"], columns, name=name))
        return statements

    def generate_all(self) -> List[sql.Composed]:
        """
        Complete DDL for the orchestrator schema, in dependency order.
        """
        from core.models import Job, Cycle, Task

        models = [Job, Cycle, Task]
        statements: List[sql.Composed] = []

        if self.destructive:
            statements.append(SchemaUtils.drop_schema(self.schema_name))
        statements.append(SchemaUtils.create_schema(self.schema_name))
        statements.append(SchemaUtils.set_search_path(self.schema_name))

        # Tables first so every enum annotation gets registered
        tables = [self.generate_table(model) for model in models]
        statements.extend(self.generate_enum(name, cls) for name, cls in sorted(self.enums.items()))
        statements.extend(tables)

        for model in models:
            statements.extend(self.generate_indexes(model))

        statements.append(TriggerBuilder.updated_at_function(self.schema_name))
        statements.extend(TriggerBuilder.updated_at_trigger(self.schema_name, "orchestrator_jobs"))

        logger.info(f"Generated {len(statements)} DDL statements for schema {self.schema_name}")
        return statements

    def execute(self, conn, dry_run: bool = False) -> int:
        """
        Execute all DDL statements on a synchronous psycopg connection.

        Returns:
            Number of statements executed (or printed, for a dry run)
        """
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)}")
            return len(statements)

        with conn.cursor() as cur:
            for stmt in statements:
                cur.execute(stmt)
        conn.commit()

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)


__all__ = ["PydanticToSQL", "SCHEMA_NAME"]

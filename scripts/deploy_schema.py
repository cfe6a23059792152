#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# PURPOSE: Deploy orchestrator schema to PostgreSQL using PydanticToSQL
# USAGE:
#   python -m scripts.deploy_schema --dry-run        # Preview SQL
#   python -m scripts.deploy_schema                  # Execute deployment
#   python -m scripts.deploy_schema --destructive    # Drop and recreate
# ============================================================================

import argparse
import logging
import sys

import psycopg

from core.schema import PydanticToSQL, SCHEMA_NAME
from repositories.database import get_connection_string


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deploy the orchestrator schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scripts.deploy_schema --dry-run       # Preview DDL without executing
  python -m scripts.deploy_schema                 # Deploy schema
  python -m scripts.deploy_schema --destructive   # DROP SCHEMA ... CASCADE first

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: require)
        """
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print DDL without executing"
    )
    parser.add_argument(
        "--destructive",
        action="store_true",
        help="Drop the schema (and all job data) before creating it"
    )
    parser.add_argument(
        "--schema",
        type=str,
        default=SCHEMA_NAME,
        help=f"Target schema (default: {SCHEMA_NAME})"
    )
    parser.add_argument(
        "--connection",
        type=str,
        help="PostgreSQL connection string (overrides environment)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    generator = PydanticToSQL(schema_name=args.schema, destructive=args.destructive)

    print("=" * 70)
    print("CYCLE ORCHESTRATOR - Schema Deployment")
    print("=" * 70)
    print(f"Schema: {args.schema}")
    print(f"Mode: {'DRY RUN' if args.dry_run else 'EXECUTE'}"
          f"{' (DESTRUCTIVE)' if args.destructive else ''}")
    print("=" * 70)

    if args.dry_run:
        for i, stmt in enumerate(generator.generate_all(), 1):
            print(f"-- [{i}]")
            print(stmt.as_string(None).strip() + ";\n")
        return 0

    try:
        with psycopg.connect(args.connection or get_connection_string()) as conn:
            count = generator.execute(conn)
    except psycopg.Error as e:
        print(f"Deployment failed: {e}")
        return 1

    print(f"Deployment completed: {count} statements executed")
    return 0


if __name__ == "__main__":
    sys.exit(main())

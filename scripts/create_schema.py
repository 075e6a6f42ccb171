#!/usr/bin/env python
"""Create the payroll review tables in a database.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --database-url postgresql+asyncpg://...
    python scripts/create_schema.py --dry-run
"""

import argparse
import asyncio
import sys

from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.schema import CreateTable

from payroll_review.config import get_settings
from payroll_review.models import Base


def print_ddl() -> None:
    """Print the PostgreSQL DDL for every table."""
    dialect = postgresql.dialect()
    for table in Base.metadata.sorted_tables:
        print(f"{str(CreateTable(table).compile(dialect=dialect)).strip()};")
        print()


async def create_tables(database_url: str) -> None:
    engine = create_async_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create payroll review tables")
    parser.add_argument(
        "--database-url",
        default=get_settings().database_url,
        help="Async database URL",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the DDL without executing it",
    )

    args = parser.parse_args()

    if args.dry_run:
        print_ddl()
        return 0

    print("Payroll review schema")
    print("=" * 50)
    print(f"Database: {args.database_url.split('@')[-1] if '@' in args.database_url else args.database_url}")
    print(f"Tables: {len(Base.metadata.sorted_tables)}")

    try:
        asyncio.run(create_tables(args.database_url))
    except SQLAlchemyError as e:
        print(f"ERROR: Could not create tables: {e}")
        return 1

    print("OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Create Database Tables Using SQLAlchemy

This script creates all database tables directly using SQLAlchemy's create_all()
method. This bypasses Alembic migrations and is useful for local setup and
throwaway databases.

Usage:
    python scripts/create_database_tables.py [--database-url sqlite:///dealflow.db] [--drop]
"""
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

import sqlalchemy as sa

from src.dealflow.db.session import build_engine, build_session_factory, create_all_tables, drop_all_tables, health_check
from src.dealflow.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    parser = argparse.ArgumentParser(description="Create dealflow tables")
    parser.add_argument('--database-url', default=None, help='Override DATABASE_URL')
    parser.add_argument('--drop', action='store_true', help='Drop existing tables first')
    args = parser.parse_args()
    setup_logging()

    engine = build_engine(args.database_url)
    if not health_check(build_session_factory(engine)):
        logger.error("database_unreachable")
        sys.exit(1)

    if args.drop:
        drop_all_tables(engine)

    create_all_tables(engine)

    table_names = sorted(sa.inspect(engine).get_table_names())
    logger.info("tables_verified", count=len(table_names), tables=table_names)
    for name in table_names:
        print(f"  - {name}")

    engine.dispose()


if __name__ == "__main__":
    main()

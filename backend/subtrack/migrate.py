"""
SubTrack Backend: SQL Migration Runner
=========================================

What:  Applies a hand-written SQL migration file to the database.
Why:   Schema changes that predate the Alembic history (and quick fixes on
       hosted databases) ship as plain .sql files run against the
       production connection string.
How:   Reads POSTGRES_URL (falling back to DATABASE_URL), connects with
       asyncpg, and executes the whole file in one call. asyncpg runs a
       multi-statement script as a single implicit transaction.

Usage:
    subtrack-migrate                       # settings.migration_sql_path
    subtrack-migrate sql/phase5_line_items.sql
    python -m subtrack.migrate sql/phase6_new_schema.sql

Exit codes:
    0  migration applied
    1  no connection string, file missing, or the SQL failed
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import asyncpg
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from subtrack.config import settings

logger = logging.getLogger("subtrack.migrate")

# Directory holding the bundled sql/ folder
BACKEND_DIR = Path(__file__).resolve().parent.parent

# Connection failures worth another attempt; SQL errors are not
TRANSIENT_CONNECT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)


class MigrationError(Exception):
    """Raised for any failure that should end the run with exit code 1."""


def connection_url_from_env() -> Optional[str]:
    """
    POSTGRES_URL, else DATABASE_URL, as a plain libpq URL.

    SQLAlchemy-style driver suffixes (`postgresql+asyncpg://`) are removed
    since asyncpg only understands `postgresql://` / `postgres://`.
    """
    url = os.environ.get("POSTGRES_URL") or os.environ.get("DATABASE_URL")
    if not url:
        return None
    scheme, sep, rest = url.partition("://")
    if sep and "+" in scheme:
        scheme = scheme.split("+", 1)[0]
    return f"{scheme}{sep}{rest}"


def resolve_sql_path(path: Optional[str]) -> Path:
    """Relative paths are tried against the working directory, then the backend directory."""
    candidate = Path(path or settings.migration_sql_path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    bundled = BACKEND_DIR / candidate
    return bundled if bundled.exists() else candidate


@retry(
    retry=retry_if_exception_type(TRANSIENT_CONNECT_ERRORS),
    stop=stop_after_attempt(settings.retry_max_attempts),
    wait=wait_exponential_jitter(
        initial=settings.retry_min_wait,
        max=settings.retry_max_wait,
        jitter=1,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def connect(url: str) -> asyncpg.Connection:
    return await asyncpg.connect(url)


async def run_migration(url: str, sql_path: Path) -> None:
    """
    Execute one SQL file.

    Raises:
        MigrationError: file unreadable, connection failed, or SQL error
    """
    try:
        sql = sql_path.read_text(encoding="utf-8")
    except OSError as e:
        raise MigrationError(f"Could not read {sql_path}: {e}") from e

    try:
        conn = await connect(url)
    except Exception as e:
        raise MigrationError(f"Could not connect to the database: {e}") from e

    try:
        logger.info("Executing SQL from %s (%d bytes)...", sql_path, len(sql))
        await conn.execute(sql)
    except Exception as e:
        raise MigrationError(f"Migration failed: {e}") from e
    finally:
        await conn.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="subtrack-migrate",
        description="Apply a SQL migration file to the SubTrack database.",
    )
    parser.add_argument(
        "sql_file",
        nargs="?",
        default=None,
        help=f"SQL file to execute (default: {settings.migration_sql_path})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    sql_path = resolve_sql_path(args.sql_file)
    logger.info("Starting migration: %s", sql_path.name)

    url = connection_url_from_env()
    if not url:
        logger.error("Error: POSTGRES_URL environment variable is not set.")
        return 1

    try:
        asyncio.run(run_migration(url, sql_path))
    except MigrationError as e:
        logger.error("%s", e)
        return 1

    logger.info("Migration completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())

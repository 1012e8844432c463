from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docworker.config.settings import Settings

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    """Build a libpq connection string from settings."""
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


def init_pool(settings: Settings) -> None:
    """Initialize the global connection pool from settings.

    Sized so every worker thread can hold a claim connection while its
    executor opens short-lived ones for state updates.
    """
    global _pool  # noqa: PLW0603
    max_size = max(10, settings.worker_concurrency * 2 + 2)
    _pool = ConnectionPool(build_conninfo(settings), min_size=1, max_size=max_size)


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def apply_schema(path: Path | None = None) -> None:
    """Create the pipeline tables if they do not exist yet."""
    sql = (path or SCHEMA_PATH).read_text(encoding="utf-8")
    with get_connection() as conn:
        conn.execute(sql)
        conn.commit()

"""Data source factory.

The backend is chosen explicitly, or from the environment:

1. ``FEED_RANKER_BACKEND`` (memory, sqlite or postgres) if set.
2. PostgreSQL if ``DATABASE_URL`` holds a postgres URL.
3. SQLite at ``FEED_RANKER_DB_PATH`` otherwise.
"""

import logging
import os
from typing import Optional

from ..config import BACKEND_ENV, DB_PATH_ENV, DEFAULT_DB_PATH
from .base import DataSourceConfig, FeedDataSource
from .memory_source import MemoryDataSource
from .sqlite_source import SQLiteDataSource

logger = logging.getLogger(__name__)

BACKEND_TYPES = ("memory", "sqlite", "postgres")


def get_data_source_type() -> str:
    """Detect the data source type from the environment.

    Returns:
        One of 'memory', 'sqlite' or 'postgres'.

    Raises:
        ValueError: If FEED_RANKER_BACKEND names an unknown backend.
    """
    explicit = os.environ.get(BACKEND_ENV, "").strip().lower()
    if explicit:
        if explicit not in BACKEND_TYPES:
            raise ValueError(f"{BACKEND_ENV} must be one of {', '.join(BACKEND_TYPES)}, got {explicit!r}")
        return explicit

    database_url = os.environ.get("DATABASE_URL", "")
    if database_url.startswith(("postgresql://", "postgres://")):
        return "postgres"

    return "sqlite"


def create_data_source(
    backend_type: Optional[str] = None,
    connection_string: Optional[str] = None,
    db_path: Optional[str] = None,
    pool_size: int = 5,
    auto_migrate: bool = True,
    **extra: object,
) -> FeedDataSource:
    """Create a data source.

    Args:
        backend_type: 'memory', 'sqlite' or 'postgres'. Detected from the environment if None.
        connection_string: PostgreSQL DSN (default: DATABASE_URL).
        db_path: SQLite file path (default: FEED_RANKER_DB_PATH or ./data/feed.db).
        pool_size: Maximum PostgreSQL connections.
        auto_migrate: Create the schema when the data source is constructed.
        **extra: Backend-specific settings, kept on the config.

    Returns:
        An uninitialized FeedDataSource. Call ``initialize()`` before use.

    Raises:
        ValueError: If backend_type is unknown.
        ImportError: If psycopg2 is missing for the postgres backend.
    """
    backend_type = backend_type or get_data_source_type()

    config = DataSourceConfig(
        backend_type=backend_type,
        connection_string=connection_string or os.environ.get("DATABASE_URL"),
        db_path=db_path or os.environ.get(DB_PATH_ENV, DEFAULT_DB_PATH),
        pool_size=pool_size,
        auto_migrate=auto_migrate,
        extra=dict(extra),
    )

    if backend_type == "memory":
        logger.info("Using in-memory data source")
        return MemoryDataSource(config)

    if backend_type == "sqlite":
        logger.info(f"Using SQLite data source at {config.db_path}")
        return SQLiteDataSource(config)

    if backend_type == "postgres":
        try:
            from .postgres_source import PostgresDataSource
        except ImportError as e:
            raise ImportError(
                "psycopg2 is required for the PostgreSQL data source. Install with: pip install feed-ranker[postgres]"
            ) from e

        logger.info("Using PostgreSQL data source")
        return PostgresDataSource(config)

    raise ValueError(f"Unknown data source type: {backend_type}")

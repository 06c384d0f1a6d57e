"""PostgreSQL data source implementation.

Provides the production data source backed by PostgreSQL.

Requires: psycopg2-binary or psycopg2
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, Optional

import psycopg2
import psycopg2.extras
import psycopg2.pool

from ..utils import ensure_utc, utc_now
from .base import DataSourceConfig
from .sql_source import SQLDataSource

logger = logging.getLogger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 1


class PostgresDataSource(SQLDataSource):
    """PostgreSQL-based data source.

    Uses connection pooling for efficient resource usage.
    """

    placeholder = "%s"

    def __init__(self, config: DataSourceConfig):
        """Initialize PostgreSQL data source.

        Args:
            config: Data source configuration with connection_string.

        Raises:
            ValueError: If connection_string is not provided.
        """
        if not config.connection_string:
            raise ValueError("connection_string is required for PostgreSQL data source")

        super().__init__(config)
        self._pool: Optional[Any] = None

        if config.auto_migrate:
            self._initialize_sync()

    def _get_pool(self) -> Any:
        """Get or create the connection pool."""
        if self._pool is None:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self.config.pool_size,
                dsn=self.config.connection_string,
            )
        return self._pool

    @contextmanager
    def _connection(self) -> Generator[Any, None, None]:
        """Context manager for database connection from pool."""
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            yield conn
        finally:
            pool.putconn(conn)

    @contextmanager
    def _cursor(self) -> Generator[Any, None, None]:
        """Context manager for database cursor with auto-commit."""
        with self._connection() as conn:
            cursor = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def _to_db_timestamp(self, value: datetime) -> datetime:
        return ensure_utc(value)

    def _from_db_timestamp(self, value: datetime) -> datetime:
        return ensure_utc(value)

    def _initialize_sync(self) -> None:
        """Initialize the database schema."""
        if self._initialized:
            return

        with self._cursor() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TIMESTAMPTZ NOT NULL
                )
            """
            )

            cursor.execute("SELECT MAX(version) FROM schema_version")
            row = cursor.fetchone()
            current_version = row["max"] if row and row["max"] else 0

            if current_version < SCHEMA_VERSION:
                self._run_migrations(cursor, current_version)

        self._initialized = True
        logger.info("PostgreSQL data source initialized")

    def _run_migrations(self, cursor: Any, from_version: int) -> None:
        """Run database migrations."""
        if from_version < 1:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    display_name TEXT NOT NULL,
                    avatar_url TEXT
                );

                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE,
                    color TEXT
                );

                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE
                );

                CREATE TABLE IF NOT EXISTS posts (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    slug TEXT NOT NULL,
                    excerpt TEXT,
                    featured_image_url TEXT,
                    reading_time DOUBLE PRECISION,
                    status TEXT NOT NULL DEFAULT 'draft',
                    published_at TIMESTAMPTZ,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    reaction_count INTEGER NOT NULL DEFAULT 0,
                    comment_count INTEGER NOT NULL DEFAULT 0,
                    author_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                    category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
                    created_at TIMESTAMPTZ NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_posts_status_published
                ON posts(status, published_at DESC);

                CREATE TABLE IF NOT EXISTS post_tags (
                    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
                    tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                    PRIMARY KEY (post_id, tag_id)
                );

                CREATE TABLE IF NOT EXISTS follows (
                    id TEXT PRIMARY KEY,
                    follower_id TEXT NOT NULL,
                    following_type TEXT NOT NULL CHECK (following_type IN ('user', 'category', 'tag')),
                    following_id TEXT NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL,
                    UNIQUE (follower_id, following_type, following_id)
                );

                CREATE INDEX IF NOT EXISTS idx_follows_follower
                ON follows(follower_id, following_type);

                CREATE TABLE IF NOT EXISTS reading_history (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
                    first_read_at TIMESTAMPTZ NOT NULL,
                    last_read_at TIMESTAMPTZ NOT NULL,
                    UNIQUE (user_id, post_id)
                );

                CREATE INDEX IF NOT EXISTS idx_reading_history_user
                ON reading_history(user_id, last_read_at DESC);
            """
            )

            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (%s, %s)",
                (1, utc_now()),
            )

            logger.info("Applied PostgreSQL migration version 1")

    def _close_sync(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

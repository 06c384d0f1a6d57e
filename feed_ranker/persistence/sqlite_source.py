"""SQLite data source implementation.

Provides a file-based data source using SQLite.
This is the default fallback when PostgreSQL is not configured.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

from ..utils import ensure_utc, parse_timestamp, utc_now
from .base import DataSourceConfig
from .sql_source import SQLDataSource

logger = logging.getLogger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 1

# Fixed-width format so timestamps sort correctly as text
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


class SQLiteDataSource(SQLDataSource):
    """SQLite-based data source.

    A single connection is shared between worker threads and guarded by a lock.
    """

    placeholder = "?"

    def __init__(self, config: Optional[DataSourceConfig] = None):
        """Initialize SQLite data source.

        Args:
            config: Data source configuration.
        """
        super().__init__(config or DataSourceConfig(backend_type="sqlite"))
        self.db_path = self.config.db_path or "./data/feed.db"
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        if self.config.auto_migrate:
            self._initialize_sync()

    def _get_connection(self) -> sqlite3.Connection:
        """Get the shared database connection."""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            # Enable foreign keys
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextmanager
    def _cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database cursor."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def _to_db_timestamp(self, value: datetime) -> str:
        return ensure_utc(value).strftime(TIMESTAMP_FORMAT)

    def _from_db_timestamp(self, value: str) -> datetime:
        return parse_timestamp(value)

    def _initialize_sync(self) -> None:
        """Initialize the database schema."""
        with self._lock:
            if self._initialized:
                return

            with self._cursor() as cursor:
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INTEGER PRIMARY KEY,
                        applied_at TEXT NOT NULL
                    )
                """
                )

                cursor.execute("SELECT MAX(version) FROM schema_version")
                row = cursor.fetchone()
                current_version = row[0] if row and row[0] else 0

                if current_version < SCHEMA_VERSION:
                    self._run_migrations(cursor, current_version)

            self._initialized = True
            logger.info(f"SQLite data source initialized at {self.db_path}")

    def _run_migrations(self, cursor: sqlite3.Cursor, from_version: int) -> None:
        """Run database migrations."""
        if from_version < 1:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    display_name TEXT NOT NULL,
                    avatar_url TEXT
                )
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE,
                    color TEXT
                )
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE
                )
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS posts (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    slug TEXT NOT NULL,
                    excerpt TEXT,
                    featured_image_url TEXT,
                    reading_time REAL,
                    status TEXT NOT NULL DEFAULT 'draft',
                    published_at TEXT,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    reaction_count INTEGER NOT NULL DEFAULT 0,
                    comment_count INTEGER NOT NULL DEFAULT 0,
                    author_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                    category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
                    created_at TEXT NOT NULL
                )
            """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_posts_status_published
                ON posts(status, published_at DESC)
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS post_tags (
                    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
                    tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                    PRIMARY KEY (post_id, tag_id)
                )
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS follows (
                    id TEXT PRIMARY KEY,
                    follower_id TEXT NOT NULL,
                    following_type TEXT NOT NULL CHECK (following_type IN ('user', 'category', 'tag')),
                    following_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE (follower_id, following_type, following_id)
                )
            """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_follows_follower
                ON follows(follower_id, following_type)
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS reading_history (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
                    first_read_at TEXT NOT NULL,
                    last_read_at TEXT NOT NULL,
                    UNIQUE (user_id, post_id)
                )
            """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_reading_history_user
                ON reading_history(user_id, last_read_at DESC)
            """
            )

            # Record migration
            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, utc_now().isoformat()),
            )

            logger.info("Applied SQLite migration version 1")

    def _close_sync(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

"""Data access layer for the Feed Ranker.

Every read the ranking engine makes goes through a FeedDataSource:
- PostgreSQL as primary database
- SQLite as local fallback
- In-memory for tests and local development

Usage:
    from feed_ranker.persistence import create_data_source

    # Create SQLite data source
    source = create_data_source("sqlite", db_path="./data/feed.db")

    # Create PostgreSQL data source
    source = create_data_source("postgres", connection_string="postgresql://...")

    # Use environment-based auto-detection
    source = create_data_source()  # FEED_RANKER_BACKEND, DATABASE_URL, then SQLite
"""

from .base import DataSourceConfig, FeedDataSource
from .factory import create_data_source, get_data_source_type
from .memory_source import MemoryDataSource
from .models import CandidatePool, CandidateQuery, FollowingType, PostCreate, PostStatus
from .sqlite_source import SQLiteDataSource

__all__ = [
    # Base classes
    "FeedDataSource",
    "DataSourceConfig",
    # Factory
    "create_data_source",
    "get_data_source_type",
    # Models
    "CandidatePool",
    "CandidateQuery",
    "FollowingType",
    "PostCreate",
    "PostStatus",
    # Implementations
    "MemoryDataSource",
    "SQLiteDataSource",
]

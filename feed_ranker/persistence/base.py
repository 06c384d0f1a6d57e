"""Abstract base class for feed data sources.

This module defines the API contract that every backend the ranking engine
reads from must implement.
"""

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from ..models import Author, Category, FeedPost, Tag
from .models import CandidatePool, CandidateQuery, FollowingType, PostCreate


@dataclass
class DataSourceConfig:
    """Configuration for data sources.

    Attributes:
        backend_type: Type of data source (memory, sqlite, postgres).
        connection_string: Database connection string (for PostgreSQL).
        db_path: File path for file-based backends (SQLite).
        pool_size: Connection pool size (for connection-pooled backends).
        auto_migrate: Whether to auto-run migrations on init.
        extra: Additional backend-specific configuration.
    """

    backend_type: str = "sqlite"
    connection_string: Optional[str] = None
    db_path: Optional[str] = None
    pool_size: int = 5
    auto_migrate: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)


class FeedDataSource(abc.ABC):
    """Abstract base class for feed data sources.

    The ranking engine only reads through this interface:
    - Follow-graph membership and reading history (preference loading)
    - Published candidate posts with author/category/tag joins
    - Trending posts ordered by engagement

    The write side exists for seeding and tests.
    """

    @abc.abstractmethod
    async def initialize(self) -> None:
        """Initialize the data source.

        This should create tables/schemas if they don't exist
        and run any pending migrations.
        """
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the data source and release resources."""
        pass

    @abc.abstractmethod
    async def health_check(self) -> bool:
        """Check if the data source is healthy.

        Returns:
            True if healthy, False otherwise.
        """
        pass

    # === Preference Reads ===

    @abc.abstractmethod
    async def load_followed_ids(self, user_id: str, following_type: FollowingType) -> Set[str]:
        """Get the ids a user follows for one following type.

        Args:
            user_id: The follower.
            following_type: Whether to return followed users, categories or tags.

        Returns:
            Set of followed ids (empty if the user follows nothing).
        """
        pass

    @abc.abstractmethod
    async def load_reading_history(self, user_id: str) -> Set[str]:
        """Get the ids of posts a user has read.

        Args:
            user_id: The reader.

        Returns:
            Set of post ids (empty if the user has read nothing).
        """
        pass

    # === Post Reads ===

    @abc.abstractmethod
    async def fetch_candidates(self, query: CandidateQuery) -> CandidatePool:
        """Fetch published posts, newest first.

        Args:
            query: Category/author filters, excluded ids and the pool limit.

        Returns:
            CandidatePool with at most ``query.limit`` posts and the total
            number of rows matching the filter.
        """
        pass

    @abc.abstractmethod
    async def fetch_trending(self, since: datetime, limit: int) -> List[FeedPost]:
        """Fetch published posts since a timestamp ordered by engagement.

        Ordering is reaction_count, then comment_count, then view_count, all
        descending.

        Args:
            since: Earliest publication time to include.
            limit: Maximum number of posts.

        Returns:
            List of posts without relevance scores.
        """
        pass

    # === Writes ===

    @abc.abstractmethod
    async def add_author(self, author: Author) -> Author:
        """Create or update an author profile."""
        pass

    @abc.abstractmethod
    async def add_category(self, category: Category) -> Category:
        """Create or update a category."""
        pass

    @abc.abstractmethod
    async def add_tag(self, tag: Tag) -> Tag:
        """Create or update a tag."""
        pass

    @abc.abstractmethod
    async def add_post(self, post: PostCreate) -> FeedPost:
        """Store a post.

        Args:
            post: The post data. Author, category and tags must already exist.

        Returns:
            The stored post with its joins resolved.

        Raises:
            ValueError: If the author, category or a tag does not exist.
        """
        pass

    @abc.abstractmethod
    async def add_follow(self, follower_id: str, following_type: FollowingType, following_id: str) -> None:
        """Record that a user follows an author, category or tag (idempotent)."""
        pass

    @abc.abstractmethod
    async def record_read(self, user_id: str, post_id: str, read_at: Optional[datetime] = None) -> None:
        """Record that a user has read a post (idempotent)."""
        pass

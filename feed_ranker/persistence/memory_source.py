"""In-memory data source implementation.

Provides a thread-safe in-memory data source for testing and local development.

Note: Data is not persisted and will be lost on restart.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from ..models import Author, Category, FeedPost, Tag
from ..utils import ensure_utc, generate_id, slugify, utc_now
from .base import DataSourceConfig, FeedDataSource
from .models import CandidatePool, CandidateQuery, FollowingType, PostCreate, PostStatus

logger = logging.getLogger(__name__)


class MemoryDataSource(FeedDataSource):
    """Dict-backed data source.

    Posts are stored fully joined, so reads never resolve foreign keys.
    """

    def __init__(self, config: Optional[DataSourceConfig] = None):
        """Initialize the in-memory data source.

        Args:
            config: Optional data source configuration.
        """
        self.config = config or DataSourceConfig(backend_type="memory")
        self._lock = threading.RLock()

        self._authors: Dict[str, Author] = {}
        self._categories: Dict[str, Category] = {}
        self._tags: Dict[str, Tag] = {}

        # post id -> (status, post)
        self._posts: Dict[str, Tuple[PostStatus, FeedPost]] = {}

        # (follower_id, following_type) -> followed ids
        self._follows: Dict[Tuple[str, FollowingType], Set[str]] = {}

        # user id -> post id -> last read time
        self._reads: Dict[str, Dict[str, datetime]] = {}

        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the in-memory data source."""
        with self._lock:
            if self._initialized:
                return
            self._initialized = True
            logger.info("In-memory data source initialized")

    async def close(self) -> None:
        """Close the data source (no-op for memory backend)."""
        pass

    async def health_check(self) -> bool:
        """The in-memory data source is always healthy."""
        return True

    # === Preference Reads ===

    async def load_followed_ids(self, user_id: str, following_type: FollowingType) -> Set[str]:
        with self._lock:
            return set(self._follows.get((user_id, FollowingType(following_type)), set()))

    async def load_reading_history(self, user_id: str) -> Set[str]:
        with self._lock:
            return set(self._reads.get(user_id, {}))

    # === Post Reads ===

    def _published(self) -> List[FeedPost]:
        return [post for status, post in self._posts.values() if status == PostStatus.PUBLISHED]

    async def fetch_candidates(self, query: CandidateQuery) -> CandidatePool:
        with self._lock:
            matches = [
                post
                for post in self._published()
                if (query.category is None or (post.category is not None and post.category.slug == query.category))
                and (query.author is None or post.author.username == query.author)
                and post.id not in query.exclude_ids
            ]

        matches.sort(key=lambda p: p.published_at, reverse=True)
        return CandidatePool(posts=matches[: query.limit], total_count=len(matches))

    async def fetch_trending(self, since: datetime, limit: int) -> List[FeedPost]:
        since = ensure_utc(since)
        with self._lock:
            recent = [post for post in self._published() if post.published_at >= since]

        recent.sort(key=lambda p: (p.reaction_count, p.comment_count, p.view_count), reverse=True)
        return recent[:limit]

    # === Writes ===

    async def add_author(self, author: Author) -> Author:
        with self._lock:
            self._authors[author.id] = author
        return author

    async def add_category(self, category: Category) -> Category:
        with self._lock:
            self._categories[category.id] = category
        return category

    async def add_tag(self, tag: Tag) -> Tag:
        with self._lock:
            self._tags[tag.id] = tag
        return tag

    async def add_post(self, post: PostCreate) -> FeedPost:
        with self._lock:
            author = self._authors.get(post.author_id)
            if author is None:
                raise ValueError(f"Unknown author: {post.author_id}")

            category = None
            if post.category_id is not None:
                category = self._categories.get(post.category_id)
                if category is None:
                    raise ValueError(f"Unknown category: {post.category_id}")

            tags = []
            for tag_id in dict.fromkeys(post.tag_ids):
                tag = self._tags.get(tag_id)
                if tag is None:
                    raise ValueError(f"Unknown tag: {tag_id}")
                tags.append(tag)

            stored = FeedPost(
                id=post.id or generate_id(),
                title=post.title,
                slug=post.slug or slugify(post.title),
                excerpt=post.excerpt,
                featured_image_url=post.featured_image_url,
                reading_time=post.reading_time,
                published_at=ensure_utc(post.published_at),
                view_count=post.view_count,
                reaction_count=post.reaction_count,
                comment_count=post.comment_count,
                author=author,
                category=category,
                tags=sorted(tags, key=lambda t: t.name),
            )
            self._posts[stored.id] = (post.status, stored)

        logger.debug(f"Stored post {stored.id} ({post.status.value})")
        return stored

    async def add_follow(self, follower_id: str, following_type: FollowingType, following_id: str) -> None:
        with self._lock:
            self._follows.setdefault((follower_id, FollowingType(following_type)), set()).add(following_id)

    async def record_read(self, user_id: str, post_id: str, read_at: Optional[datetime] = None) -> None:
        with self._lock:
            self._reads.setdefault(user_id, {})[post_id] = ensure_utc(read_at) if read_at else utc_now()

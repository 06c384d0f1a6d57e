"""Shared query logic for SQL-backed data sources.

SQLite and PostgreSQL use the same schema (profiles, categories, tags, posts,
post_tags, follows, reading_history) and the same queries. Subclasses supply
the connection handling, the DDL, the parameter placeholder and timestamp
conversion. Blocking calls run in worker threads so the async interface never
blocks the event loop.
"""

import abc
import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Iterable, List, Optional, Sequence, Set, Tuple

from ..metrics import track_data_source_operation
from ..models import Author, Category, FeedPost, Tag
from ..utils import generate_id, slugify, utc_now
from .base import DataSourceConfig, FeedDataSource
from .models import CandidatePool, CandidateQuery, FollowingType, PostCreate, PostStatus

logger = logging.getLogger(__name__)


POST_COLUMNS = """
    p.id, p.title, p.slug, p.excerpt, p.featured_image_url, p.reading_time,
    p.published_at, p.view_count, p.reaction_count, p.comment_count,
    a.id AS author_id, a.username AS author_username,
    a.display_name AS author_display_name, a.avatar_url AS author_avatar_url,
    c.id AS category_id, c.name AS category_name, c.slug AS category_slug,
    c.color AS category_color
"""

POST_JOINS = """
    FROM posts p
    JOIN profiles a ON a.id = p.author_id
    LEFT JOIN categories c ON c.id = p.category_id
"""


class SQLDataSource(FeedDataSource):
    """Base class for SQL data sources."""

    #: Parameter placeholder used by the DB-API driver.
    placeholder: str = "?"

    def __init__(self, config: DataSourceConfig):
        self.config = config
        self._initialized = False

    # === Driver Hooks ===

    @abc.abstractmethod
    @contextmanager
    def _cursor(self) -> Generator[Any, None, None]:
        """Context manager yielding a cursor whose rows support ``row["column"]``."""
        yield None

    @abc.abstractmethod
    def _initialize_sync(self) -> None:
        """Create the schema and run pending migrations."""
        pass

    @abc.abstractmethod
    def _close_sync(self) -> None:
        """Release connections."""
        pass

    @abc.abstractmethod
    def _to_db_timestamp(self, value: datetime) -> Any:
        """Convert a datetime to the value stored in the database."""
        pass

    @abc.abstractmethod
    def _from_db_timestamp(self, value: Any) -> datetime:
        """Convert a stored timestamp back to an aware UTC datetime."""
        pass

    # === Helpers ===

    def _in_clause(self, count: int) -> str:
        return ", ".join([self.placeholder] * count)

    async def _run(self, operation: str, func: Any, *args: Any) -> Any:
        """Run a blocking function in a worker thread, with metrics and tracing."""
        with track_data_source_operation(operation):
            return await asyncio.to_thread(func, *args)

    def _row_to_post(self, row: Any, tags: Sequence[Tag]) -> FeedPost:
        """Convert a joined post row to a FeedPost."""
        category = None
        if row["category_id"] is not None:
            category = Category(
                id=row["category_id"],
                name=row["category_name"],
                slug=row["category_slug"],
                color=row["category_color"],
            )

        return FeedPost(
            id=row["id"],
            title=row["title"],
            slug=row["slug"],
            excerpt=row["excerpt"],
            featured_image_url=row["featured_image_url"],
            reading_time=row["reading_time"],
            published_at=self._from_db_timestamp(row["published_at"]),
            view_count=row["view_count"],
            reaction_count=row["reaction_count"],
            comment_count=row["comment_count"],
            author=Author(
                id=row["author_id"],
                username=row["author_username"],
                display_name=row["author_display_name"],
                avatar_url=row["author_avatar_url"],
            ),
            category=category,
            tags=list(tags),
        )

    def _load_tags(self, cursor: Any, post_ids: List[str]) -> Dict[str, List[Tag]]:
        """Load tags for a batch of posts."""
        tags: Dict[str, List[Tag]] = {post_id: [] for post_id in post_ids}
        if not post_ids:
            return tags

        cursor.execute(
            f"""
            SELECT pt.post_id, t.id, t.name, t.slug
            FROM post_tags pt
            JOIN tags t ON t.id = pt.tag_id
            WHERE pt.post_id IN ({self._in_clause(len(post_ids))})
            ORDER BY t.name
            """,
            tuple(post_ids),
        )
        for row in cursor.fetchall():
            tags[row["post_id"]].append(Tag(id=row["id"], name=row["name"], slug=row["slug"]))
        return tags

    def _rows_to_posts(self, cursor: Any, rows: Iterable[Any]) -> List[FeedPost]:
        rows = list(rows)
        tags = self._load_tags(cursor, [row["id"] for row in rows])
        return [self._row_to_post(row, tags[row["id"]]) for row in rows]

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize the database schema."""
        if self._initialized:
            return
        await asyncio.to_thread(self._initialize_sync)

    async def close(self) -> None:
        """Close the database connections."""
        await asyncio.to_thread(self._close_sync)

    def _health_check_sync(self) -> bool:
        with self._cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return True

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            return await asyncio.to_thread(self._health_check_sync)
        except Exception as e:
            logger.error(f"Data source health check failed: {e}")
            return False

    # === Preference Reads ===

    def _load_followed_ids_sync(self, user_id: str, following_type: FollowingType) -> Set[str]:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT following_id FROM follows WHERE follower_id = {p} AND following_type = {p}",
                (user_id, FollowingType(following_type).value),
            )
            return {row["following_id"] for row in cursor.fetchall()}

    async def load_followed_ids(self, user_id: str, following_type: FollowingType) -> Set[str]:
        return await self._run("load_followed_ids", self._load_followed_ids_sync, user_id, following_type)

    def _load_reading_history_sync(self, user_id: str) -> Set[str]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT post_id FROM reading_history WHERE user_id = {self.placeholder}", (user_id,))
            return {row["post_id"] for row in cursor.fetchall()}

    async def load_reading_history(self, user_id: str) -> Set[str]:
        return await self._run("load_reading_history", self._load_reading_history_sync, user_id)

    # === Post Reads ===

    def _candidate_filter(self, query: CandidateQuery) -> Tuple[str, List[Any]]:
        p = self.placeholder
        conditions = [f"p.status = {p}"]
        params: List[Any] = [PostStatus.PUBLISHED.value]

        if query.category is not None:
            conditions.append(f"c.slug = {p}")
            params.append(query.category)

        if query.author is not None:
            conditions.append(f"a.username = {p}")
            params.append(query.author)

        if query.exclude_ids:
            exclude_ids = sorted(query.exclude_ids)
            conditions.append(f"p.id NOT IN ({self._in_clause(len(exclude_ids))})")
            params.extend(exclude_ids)

        return " AND ".join(conditions), params

    def _fetch_candidates_sync(self, query: CandidateQuery) -> CandidatePool:
        where, params = self._candidate_filter(query)
        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total {POST_JOINS} WHERE {where}", tuple(params))
            total = cursor.fetchone()["total"]

            cursor.execute(
                f"SELECT {POST_COLUMNS} {POST_JOINS} WHERE {where} "
                f"ORDER BY p.published_at DESC LIMIT {self.placeholder}",
                tuple(params + [query.limit]),
            )
            posts = self._rows_to_posts(cursor, cursor.fetchall())

        return CandidatePool(posts=posts, total_count=total)

    async def fetch_candidates(self, query: CandidateQuery) -> CandidatePool:
        return await self._run("fetch_candidates", self._fetch_candidates_sync, query)

    def _fetch_trending_sync(self, since: datetime, limit: int) -> List[FeedPost]:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                SELECT {POST_COLUMNS} {POST_JOINS}
                WHERE p.status = {p} AND p.published_at >= {p}
                ORDER BY p.reaction_count DESC, p.comment_count DESC, p.view_count DESC
                LIMIT {p}
                """,
                (PostStatus.PUBLISHED.value, self._to_db_timestamp(since), limit),
            )
            return self._rows_to_posts(cursor, cursor.fetchall())

    async def fetch_trending(self, since: datetime, limit: int) -> List[FeedPost]:
        return await self._run("fetch_trending", self._fetch_trending_sync, since, limit)

    # === Writes ===

    def _add_author_sync(self, author: Author) -> Author:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO profiles (id, username, display_name, avatar_url)
                VALUES ({p}, {p}, {p}, {p})
                ON CONFLICT (id) DO UPDATE SET
                    username = excluded.username,
                    display_name = excluded.display_name,
                    avatar_url = excluded.avatar_url
                """,
                (author.id, author.username, author.display_name, author.avatar_url),
            )
        return author

    async def add_author(self, author: Author) -> Author:
        return await self._run("add_author", self._add_author_sync, author)

    def _add_category_sync(self, category: Category) -> Category:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO categories (id, name, slug, color)
                VALUES ({p}, {p}, {p}, {p})
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    slug = excluded.slug,
                    color = excluded.color
                """,
                (category.id, category.name, category.slug, category.color),
            )
        return category

    async def add_category(self, category: Category) -> Category:
        return await self._run("add_category", self._add_category_sync, category)

    def _add_tag_sync(self, tag: Tag) -> Tag:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO tags (id, name, slug)
                VALUES ({p}, {p}, {p})
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    slug = excluded.slug
                """,
                (tag.id, tag.name, tag.slug),
            )
        return tag

    async def add_tag(self, tag: Tag) -> Tag:
        return await self._run("add_tag", self._add_tag_sync, tag)

    def _exists(self, cursor: Any, table: str, row_id: str) -> bool:
        cursor.execute(f"SELECT 1 FROM {table} WHERE id = {self.placeholder}", (row_id,))
        return cursor.fetchone() is not None

    def _add_post_sync(self, post: PostCreate) -> FeedPost:
        p = self.placeholder
        post_id = post.id or generate_id()
        now = self._to_db_timestamp(utc_now())

        with self._cursor() as cursor:
            if not self._exists(cursor, "profiles", post.author_id):
                raise ValueError(f"Unknown author: {post.author_id}")
            if post.category_id is not None and not self._exists(cursor, "categories", post.category_id):
                raise ValueError(f"Unknown category: {post.category_id}")
            for tag_id in post.tag_ids:
                if not self._exists(cursor, "tags", tag_id):
                    raise ValueError(f"Unknown tag: {tag_id}")

            cursor.execute(
                f"""
                INSERT INTO posts (
                    id, title, slug, excerpt, featured_image_url, reading_time,
                    status, published_at, view_count, reaction_count, comment_count,
                    author_id, category_id, created_at
                ) VALUES ({self._in_clause(14)})
                """,
                (
                    post_id,
                    post.title,
                    post.slug or slugify(post.title),
                    post.excerpt,
                    post.featured_image_url,
                    post.reading_time,
                    post.status.value,
                    self._to_db_timestamp(post.published_at),
                    post.view_count,
                    post.reaction_count,
                    post.comment_count,
                    post.author_id,
                    post.category_id,
                    now,
                ),
            )

            for tag_id in dict.fromkeys(post.tag_ids):
                cursor.execute(
                    f"INSERT INTO post_tags (post_id, tag_id) VALUES ({p}, {p})",
                    (post_id, tag_id),
                )

            cursor.execute(f"SELECT {POST_COLUMNS} {POST_JOINS} WHERE p.id = {p}", (post_id,))
            stored = self._rows_to_posts(cursor, [cursor.fetchone()])[0]

        logger.debug(f"Stored post {post_id} ({post.status.value})")
        return stored

    async def add_post(self, post: PostCreate) -> FeedPost:
        return await self._run("add_post", self._add_post_sync, post)

    def _add_follow_sync(self, follower_id: str, following_type: FollowingType, following_id: str) -> None:
        p = self.placeholder
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO follows (id, follower_id, following_type, following_id, created_at)
                VALUES ({p}, {p}, {p}, {p}, {p})
                ON CONFLICT (follower_id, following_type, following_id) DO NOTHING
                """,
                (
                    generate_id(),
                    follower_id,
                    FollowingType(following_type).value,
                    following_id,
                    self._to_db_timestamp(utc_now()),
                ),
            )

    async def add_follow(self, follower_id: str, following_type: FollowingType, following_id: str) -> None:
        await self._run("add_follow", self._add_follow_sync, follower_id, following_type, following_id)

    def _record_read_sync(self, user_id: str, post_id: str, read_at: Optional[datetime]) -> None:
        p = self.placeholder
        read_at_value = self._to_db_timestamp(read_at or utc_now())
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO reading_history (id, user_id, post_id, first_read_at, last_read_at)
                VALUES ({p}, {p}, {p}, {p}, {p})
                ON CONFLICT (user_id, post_id) DO UPDATE SET last_read_at = excluded.last_read_at
                """,
                (generate_id(), user_id, post_id, read_at_value, read_at_value),
            )

    async def record_read(self, user_id: str, post_id: str, read_at: Optional[datetime] = None) -> None:
        await self._run("record_read", self._record_read_sync, user_id, post_id, read_at)

"""Shared fixtures for the Feed Ranker tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest

from feed_ranker import (
    Author,
    Category,
    DataSourceConfig,
    FeedPost,
    FollowingType,
    MemoryDataSource,
    PostCreate,
    SQLiteDataSource,
    Tag,
)

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def make_post(
    post_id: str,
    author_id: str = "author-1",
    published_at: Optional[datetime] = None,
    age_days: float = 0,
    reactions: int = 0,
    comments: int = 0,
    views: int = 0,
    reading_time: Optional[float] = None,
    category_id: Optional[str] = None,
    tag_ids: Iterable[str] = (),
) -> FeedPost:
    """Build a FeedPost with sensible defaults for ranking tests."""
    return FeedPost(
        id=post_id,
        title=f"Post {post_id}",
        slug=f"post-{post_id}",
        reading_time=reading_time,
        published_at=published_at or NOW - timedelta(days=age_days),
        view_count=views,
        reaction_count=reactions,
        comment_count=comments,
        author=Author(id=author_id, username=author_id, display_name=author_id.title()),
        category=Category(id=category_id, name=category_id.title(), slug=category_id) if category_id else None,
        tags=[Tag(id=tag_id, name=tag_id.title(), slug=tag_id) for tag_id in tag_ids],
    )


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def post_factory():
    """Factory for FeedPost instances relative to the fixed reference time."""
    return make_post


async def seed_catalog(source) -> None:
    """Add three authors, two categories and three tags to a data source."""
    for author_id in ("alice", "bob", "carol"):
        await source.add_author(Author(id=author_id, username=author_id, display_name=author_id.title()))
    for category_id in ("python", "design"):
        await source.add_category(Category(id=f"cat-{category_id}", name=category_id.title(), slug=category_id))
    for tag_id in ("asyncio", "testing", "css"):
        await source.add_tag(Tag(id=f"tag-{tag_id}", name=tag_id.title(), slug=tag_id))


async def add_posts(source, now: datetime) -> None:
    """Add a small, realistic set of posts to a data source.

    Newest first: p1..p6 published, one draft, one archived.
    """
    posts = [
        PostCreate(
            id="p1",
            title="Structured concurrency in Python",
            author_id="alice",
            category_id="cat-python",
            tag_ids=["tag-asyncio"],
            published_at=now - timedelta(hours=2),
            reading_time=8,
            reaction_count=4,
            comment_count=1,
            view_count=120,
        ),
        PostCreate(
            id="p2",
            title="Property-based testing",
            author_id="bob",
            category_id="cat-python",
            tag_ids=["tag-testing"],
            published_at=now - timedelta(days=1),
            reading_time=12,
            reaction_count=10,
            comment_count=3,
            view_count=400,
        ),
        PostCreate(
            id="p3",
            title="Container queries",
            author_id="carol",
            category_id="cat-design",
            tag_ids=["tag-css"],
            published_at=now - timedelta(days=2),
            reading_time=4,
            reaction_count=25,
            comment_count=6,
            view_count=900,
        ),
        PostCreate(
            id="p4",
            title="Testing asyncio code",
            author_id="alice",
            category_id="cat-python",
            tag_ids=["tag-asyncio", "tag-testing"],
            published_at=now - timedelta(days=3),
            reading_time=35,
            reaction_count=2,
            view_count=50,
        ),
        PostCreate(
            id="p5",
            title="A field guide to flaky tests",
            author_id="bob",
            tag_ids=["tag-testing"],
            published_at=now - timedelta(days=5),
            reading_time=20,
            reaction_count=25,
            comment_count=2,
            view_count=300,
        ),
        PostCreate(
            id="p6",
            title="Designing for dark mode",
            author_id="carol",
            category_id="cat-design",
            published_at=now - timedelta(days=10),
            reaction_count=80,
            comment_count=20,
            view_count=5000,
        ),
        PostCreate(
            id="draft",
            title="Unfinished thoughts",
            author_id="alice",
            published_at=now - timedelta(hours=1),
            status="draft",
            reaction_count=999,
        ),
        PostCreate(
            id="archived",
            title="Old news",
            author_id="bob",
            published_at=now - timedelta(days=1),
            status="archived",
            reaction_count=999,
        ),
    ]
    for post in posts:
        await source.add_post(post)


async def add_follows(source) -> None:
    """reader-1 follows alice, the design category and the testing tag, and has read p2."""
    await source.add_follow("reader-1", FollowingType.USER, "alice")
    await source.add_follow("reader-1", FollowingType.CATEGORY, "cat-design")
    await source.add_follow("reader-1", FollowingType.TAG, "tag-testing")
    await source.record_read("reader-1", "p2")


@pytest.fixture
def populate(now):
    """Coroutine function that fills a data source with the standard fixture data."""

    async def _populate(source):
        await source.initialize()
        await seed_catalog(source)
        await add_posts(source, now)
        await add_follows(source)
        return source

    return _populate


@pytest.fixture
def memory_source(populate):
    """An in-memory data source with the standard catalog, posts and follows."""
    return asyncio.run(populate(MemoryDataSource()))


@pytest.fixture
def sqlite_source(populate, tmp_path):
    """A file-backed SQLite data source with the standard catalog, posts and follows."""
    source = SQLiteDataSource(DataSourceConfig(backend_type="sqlite", db_path=str(tmp_path / "feed.db")))
    asyncio.run(populate(source))
    yield source
    asyncio.run(source.close())


@pytest.fixture
def frozen_clock(monkeypatch, now):
    """Pin the feed service clock to the fixed reference time."""
    monkeypatch.setattr("feed_ranker.feed_api.utc_now", lambda: now)
    return now

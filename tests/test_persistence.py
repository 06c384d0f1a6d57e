"""Tests for the data sources and the data source factory."""

import asyncio
from datetime import timedelta

import pytest

from feed_ranker import (
    Author,
    CandidateQuery,
    DataSourceConfig,
    FollowingType,
    MemoryDataSource,
    PostCreate,
    SQLiteDataSource,
    create_data_source,
    get_data_source_type,
)


@pytest.fixture(params=["memory", "sqlite"])
def source(request):
    """Each populated data source backend."""
    return request.getfixturevalue(f"{request.param}_source")


def run(coro):
    return asyncio.run(coro)


class TestPreferenceReads:
    """Tests for follows and reading history."""

    def test_followed_ids_by_type(self, source):
        assert run(source.load_followed_ids("reader-1", FollowingType.USER)) == {"alice"}
        assert run(source.load_followed_ids("reader-1", FollowingType.CATEGORY)) == {"cat-design"}
        assert run(source.load_followed_ids("reader-1", FollowingType.TAG)) == {"tag-testing"}

    def test_unknown_user_follows_nothing(self, source):
        assert run(source.load_followed_ids("nobody", FollowingType.USER)) == set()
        assert run(source.load_reading_history("nobody")) == set()

    def test_reading_history(self, source):
        assert run(source.load_reading_history("reader-1")) == {"p2"}

    def test_follows_are_idempotent(self, source):
        run(source.add_follow("reader-1", FollowingType.USER, "alice"))
        run(source.add_follow("reader-1", FollowingType.USER, "bob"))

        assert run(source.load_followed_ids("reader-1", FollowingType.USER)) == {"alice", "bob"}

    def test_reads_are_idempotent(self, source, now):
        run(source.record_read("reader-1", "p2", now))
        run(source.record_read("reader-1", "p3"))

        assert run(source.load_reading_history("reader-1")) == {"p2", "p3"}


class TestFetchCandidates:
    """Tests for the candidate fetch."""

    def test_published_newest_first(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(limit=100)))

        assert [p.id for p in pool.posts] == ["p1", "p2", "p3", "p4", "p5", "p6"]
        assert pool.total_count == 6

    def test_limit_keeps_total_count(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(limit=2)))

        assert [p.id for p in pool.posts] == ["p1", "p2"]
        assert pool.total_count == 6

    def test_category_filter(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(category="design", limit=10)))

        assert [p.id for p in pool.posts] == ["p3", "p6"]
        assert pool.total_count == 2

    def test_author_filter(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(author="alice", limit=10)))

        assert [p.id for p in pool.posts] == ["p1", "p4"]

    def test_exclude_ids(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(exclude_ids={"p1", "p3"}, limit=10)))

        assert [p.id for p in pool.posts] == ["p2", "p4", "p5", "p6"]
        assert pool.total_count == 4

    def test_unknown_category_is_empty(self, source):
        pool = run(source.fetch_candidates(CandidateQuery(category="cooking", limit=10)))

        assert pool.posts == []
        assert pool.total_count == 0

    def test_posts_are_joined(self, source, now):
        post = run(source.fetch_candidates(CandidateQuery(limit=1))).posts[0]

        assert post.title == "Structured concurrency in Python"
        assert post.slug == "structured-concurrency-in-python"
        assert post.author.username == "alice"
        assert post.category.slug == "python"
        assert [t.slug for t in post.tags] == ["asyncio"]
        assert post.reading_time == 8
        assert post.published_at == now - timedelta(hours=2)
        assert post.relevance_score is None

    def test_tags_sorted_by_name(self, source):
        post = next(p for p in run(source.fetch_candidates(CandidateQuery(limit=10))).posts if p.id == "p4")

        assert [t.name for t in post.tags] == ["Asyncio", "Testing"]

    def test_post_without_category(self, source):
        post = next(p for p in run(source.fetch_candidates(CandidateQuery(limit=10))).posts if p.id == "p5")

        assert post.category is None


class TestFetchTrending:
    """Tests for the trending fetch."""

    def test_recent_posts_by_engagement(self, source, now):
        posts = run(source.fetch_trending(now - timedelta(days=7), 10))

        assert [p.id for p in posts] == ["p3", "p5", "p2", "p1", "p4"]

    def test_limit(self, source, now):
        posts = run(source.fetch_trending(now - timedelta(days=30), 2))

        assert [p.id for p in posts] == ["p6", "p3"]


class TestWrites:
    """Tests for the write side."""

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"author_id": "ghost"}, "Unknown author"),
            ({"category_id": "cat-ghost"}, "Unknown category"),
            ({"tag_ids": ["tag-ghost"]}, "Unknown tag"),
        ],
    )
    def test_unknown_references(self, source, now, overrides, message):
        post = PostCreate(**{"title": "Broken", "author_id": "alice", "published_at": now, **overrides})

        with pytest.raises(ValueError, match=message):
            run(source.add_post(post))

    def test_generated_id_and_slug(self, source, now):
        stored = run(source.add_post(PostCreate(title="Hello, World!", author_id="bob", published_at=now)))

        assert stored.id
        assert stored.slug == "hello-world"
        assert run(source.fetch_candidates(CandidateQuery(limit=1))).posts[0].id == stored.id

    def test_duplicate_tag_ids_are_stored_once(self, source, now):
        """Test that repeated tag ids attach each tag to the post only once."""
        post = PostCreate(
            title="Testing asyncio code",
            author_id="bob",
            tag_ids=["tag-testing", "tag-asyncio", "tag-testing"],
            published_at=now,
        )
        stored = run(source.add_post(post))

        fetched = run(source.fetch_candidates(CandidateQuery(limit=1))).posts[0]
        assert fetched.id == stored.id
        assert sorted(t.id for t in fetched.tags) == ["tag-asyncio", "tag-testing"]

    def test_author_upsert(self, sqlite_source):
        run(sqlite_source.add_author(Author(id="alice", username="alice", display_name="Alice Liddell")))

        pool = run(sqlite_source.fetch_candidates(CandidateQuery(author="alice", limit=1)))
        assert pool.posts[0].author.display_name == "Alice Liddell"


class TestLifecycle:
    """Tests for initialization and health checks."""

    def test_health_check(self, source):
        assert run(source.health_check()) is True

    def test_sqlite_data_persists(self, sqlite_source, tmp_path):
        reopened = SQLiteDataSource(DataSourceConfig(backend_type="sqlite", db_path=str(tmp_path / "feed.db")))

        pool = run(reopened.fetch_candidates(CandidateQuery(limit=100)))
        run(reopened.close())

        assert pool.total_count == 6

    def test_sqlite_in_memory(self):
        source = SQLiteDataSource(DataSourceConfig(backend_type="sqlite", db_path=":memory:"))

        assert run(source.health_check()) is True
        assert run(source.fetch_candidates(CandidateQuery(limit=10))).posts == []
        run(source.close())

    def test_initialize_is_idempotent(self, sqlite_source):
        run(sqlite_source.initialize())

        assert run(sqlite_source.health_check()) is True


class TestFactory:
    """Tests for the data source factory."""

    def test_memory(self):
        assert isinstance(create_data_source("memory"), MemoryDataSource)

    def test_sqlite(self, tmp_path):
        source = create_data_source("sqlite", db_path=str(tmp_path / "feed.db"))

        assert isinstance(source, SQLiteDataSource)
        assert source.db_path == str(tmp_path / "feed.db")
        run(source.close())

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown data source type"):
            create_data_source("cassandra")

    def test_detects_sqlite_by_default(self, monkeypatch):
        monkeypatch.delenv("FEED_RANKER_BACKEND", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)

        assert get_data_source_type() == "sqlite"

    def test_backend_variable_wins(self, monkeypatch):
        monkeypatch.setenv("FEED_RANKER_BACKEND", "Memory")
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/feed")

        assert get_data_source_type() == "memory"
        assert isinstance(create_data_source(), MemoryDataSource)

    def test_unknown_backend_variable(self, monkeypatch):
        monkeypatch.setenv("FEED_RANKER_BACKEND", "cassandra")

        with pytest.raises(ValueError, match="FEED_RANKER_BACKEND"):
            get_data_source_type()

    @pytest.mark.parametrize("url", ["postgresql://localhost/feed", "postgres://localhost/feed"])
    def test_detects_postgres(self, monkeypatch, url):
        monkeypatch.delenv("FEED_RANKER_BACKEND", raising=False)
        monkeypatch.setenv("DATABASE_URL", url)

        assert get_data_source_type() == "postgres"

    def test_postgres_requires_connection_string(self, monkeypatch):
        pytest.importorskip("psycopg2")
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValueError, match="connection_string"):
            create_data_source("postgres")

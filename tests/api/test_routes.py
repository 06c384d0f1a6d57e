"""Tests for the API routes."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from feed_ranker import FeedWeights, MemoryDataSource
from feed_ranker.api.app import create_app
from feed_ranker.api.dependencies import reset_dependencies, set_data_source, set_weights


class UnhealthyDataSource(MemoryDataSource):
    """Memory data source that reports a lost connection."""

    async def health_check(self):
        return False


class BrokenDataSource(MemoryDataSource):
    """Memory data source whose candidate fetch always fails."""

    async def fetch_candidates(self, query):
        raise ConnectionError("posts table unavailable")


class TestAPIRoutes:
    """Tests for the API routes."""

    @pytest.fixture
    def data_source(self, memory_source, frozen_clock):
        """Install the populated memory source behind the API."""
        set_data_source(memory_source)
        set_weights(FeedWeights())
        yield memory_source
        asyncio.run(reset_dependencies())

    @pytest.fixture
    def client(self, data_source):
        """Create a test client."""
        app = create_app()
        return TestClient(app)

    def test_root_endpoint(self, client):
        """Test the root endpoint."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "Feed Ranker API"
        assert "version" in data
        assert "docs" in data

    def test_health_check(self, client):
        """Test the health check endpoint."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_readiness_check(self, client):
        """Test the readiness check endpoint."""
        response = client.get("/api/v1/ready")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "connected"

    def test_readiness_check_unhealthy(self):
        """Test that an unreachable data source is reported as not ready."""
        set_data_source(UnhealthyDataSource())
        try:
            response = TestClient(create_app()).get("/api/v1/ready")
        finally:
            asyncio.run(reset_dependencies())

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
        assert response.json()["database"] == "disconnected"

    def test_get_feed(self, client):
        """Test getting a ranked feed."""
        response = client.get("/api/v1/feed", params={"user_id": "reader-1"})
        assert response.status_code == 200

        data = response.json()
        assert [p["id"] for p in data["posts"]] == ["p1", "p3", "p4", "p6", "p2", "p5"]
        assert data["total"] == 6
        assert data["page"] == 1
        assert data["totalPages"] == 1
        assert data["hasMore"] is False
        assert all(p["relevance_score"] is not None for p in data["posts"])

    def test_get_feed_post_shape(self, client):
        """Test that posts carry their joined author, category and tags."""
        post = client.get("/api/v1/feed", params={"user_id": "reader-1", "limit": 1}).json()["posts"][0]

        assert post["author"]["username"] == "alice"
        assert post["category"]["slug"] == "python"
        assert post["tags"] == [{"id": "tag-asyncio", "name": "Asyncio", "slug": "asyncio"}]
        assert post["published_at"].startswith("2026-10-17T10:00:00")

    def test_get_feed_with_filters(self, client):
        """Test the feed filters."""
        response = client.get(
            "/api/v1/feed",
            params={"user_id": "reader-1", "exclude_read": "true", "tag": "testing"},
        )
        assert response.status_code == 200
        assert [p["id"] for p in response.json()["posts"]] == ["p4", "p5"]

    def test_get_feed_pagination(self, client):
        """Test requesting a later page."""
        data = client.get("/api/v1/feed", params={"user_id": "reader-1", "page": 2, "limit": 2}).json()

        assert [p["id"] for p in data["posts"]] == ["p4", "p6"]
        assert data["page"] == 2

    def test_get_feed_unknown_user(self, client):
        """Test that a user with no follows still gets a feed."""
        data = client.get("/api/v1/feed", params={"user_id": "newcomer"}).json()

        assert len(data["posts"]) == 6

    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"user_id": ""},
            {"user_id": "reader-1", "page": 0},
            {"user_id": "reader-1", "limit": 0},
            {"user_id": "reader-1", "limit": 101},
        ],
    )
    def test_get_feed_validation(self, client, params):
        """Test that invalid requests are rejected."""
        response = client.get("/api/v1/feed", params=params)
        assert response.status_code == 422

    def test_get_trending(self, client):
        """Test getting trending posts."""
        response = client.get("/api/v1/feed/trending", params={"limit": 3})
        assert response.status_code == 200

        data = response.json()
        assert [p["id"] for p in data] == ["p3", "p5", "p2"]
        assert all("relevance_score" not in p for p in data)

    def test_get_trending_validation(self, client):
        """Test that an invalid trending limit is rejected."""
        response = client.get("/api/v1/feed/trending", params={"limit": 0})
        assert response.status_code == 422

    def test_data_source_failure(self, frozen_clock):
        """Test that a failing data source yields a 500 response."""
        set_data_source(BrokenDataSource())
        try:
            client = TestClient(create_app(), raise_server_exceptions=False)
            response = client.get("/api/v1/feed", params={"user_id": "reader-1"})
        finally:
            asyncio.run(reset_dependencies())

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_metrics_endpoint(self, client):
        """Test the Prometheus endpoint."""
        client.get("/api/v1/feed", params={"user_id": "reader-1"})

        response = client.get("/metrics")
        assert response.status_code == 200
        assert "feed_ranker_feed_requests_total" in response.text
        assert "feed_ranker_api_requests_total" in response.text

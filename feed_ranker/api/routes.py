"""API routes for the Feed Ranker.

This module defines the RESTful endpoints for:
- The personalized feed
- Trending posts
- Health and readiness checks
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..config import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, DEFAULT_TRENDING_LIMIT, MAX_PAGE_SIZE
from ..feed_api import FeedService
from ..models import FeedOptions, FeedResult
from ..persistence import FeedDataSource
from .dependencies import get_data_source, get_feed_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["feed"])


@router.get(
    "/feed",
    response_model=FeedResult,
    summary="Personalized feed",
    description="Get one page of the user's feed, ranked by relevance and diversified by author.",
)
async def get_feed(
    user_id: str = Query(..., min_length=1, description="User to rank the feed for"),
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Posts per page"),
    exclude_read: bool = Query(False, description="Leave out posts the user has read"),
    category: Optional[str] = Query(None, description="Filter by category slug"),
    tag: Optional[str] = Query(None, description="Filter by tag slug"),
    author: Optional[str] = Query(None, description="Filter by author username"),
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedResult:
    """Get the personalized feed for a user."""
    options = FeedOptions(
        user_id=user_id,
        page=page,
        limit=limit,
        exclude_read=exclude_read,
        category=category,
        tag=tag,
        author=author,
    )
    return await feed_service.get_feed_posts(options)


@router.get(
    "/feed/trending",
    response_model=List[dict],
    summary="Trending posts",
    description="Get last week's posts ordered by reactions, comments and views.",
)
async def get_trending(
    limit: int = Query(DEFAULT_TRENDING_LIMIT, ge=1, le=MAX_PAGE_SIZE, description="Maximum number of posts"),
    feed_service: FeedService = Depends(get_feed_service),
) -> List[dict]:
    """Get trending posts."""
    posts = await feed_service.get_trending_posts(limit)
    return [post.model_dump(mode="json", exclude={"relevance_score"}) for post in posts]


@router.get(
    "/health",
    summary="Health check",
    description="Check if the API is healthy.",
)
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept requests.",
)
async def readiness_check(
    data_source: FeedDataSource = Depends(get_data_source),
) -> JSONResponse:
    """Readiness check endpoint."""
    healthy = await data_source.health_check()
    db_status = "connected" if healthy else "disconnected"

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "database": db_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )

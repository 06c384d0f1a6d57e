"""Pagination of the diversified feed."""

import math
from typing import Sequence

from .models import FeedPost, FeedResult


def paginate(diversified: Sequence[FeedPost], page: int, limit: int, backend_count: int) -> FeedResult:
    """Slice one page out of the diversified posts.

    ``total`` is the smaller of the backend's announced count and the number
    of diversified posts, so once the candidate cap or the diversity window
    has dropped posts it undercounts what the backend actually holds.

    Args:
        diversified: Diversified posts in ranking order.
        page: 1-based page number.
        limit: Page size.
        backend_count: Number of rows the backend reported for the filter.

    Returns:
        FeedResult for the requested page.
    """
    if page < 1:
        raise ValueError(f"page must be at least 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    start = (page - 1) * limit
    posts = list(diversified[start : start + limit])

    total = min(backend_count, len(diversified))
    total_pages = math.ceil(total / limit)

    return FeedResult(
        posts=posts,
        total=total,
        page=page,
        total_pages=total_pages,
        has_more=page < total_pages,
    )

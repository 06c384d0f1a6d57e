"""Personalized feed service.

This module wires the ranking pipeline together:

1. Load the user's preferences (four concurrent fetches).
2. Fetch a bounded pool of recent published candidates.
3. Score and sort the candidates.
4. Apply the author diversity window.
5. Slice out the requested page.

It also serves the trending listing, which skips scoring entirely.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, List, Optional, Set

from .config import (
    DEFAULT_TRENDING_LIMIT,
    MAX_CONSECUTIVE_SAME_AUTHOR,
    TRENDING_WINDOW_DAYS,
    FeedWeights,
    candidate_pool_size,
    load_feed_weights,
)
from .diversity import diversify
from .metrics import (
    record_candidate_pool,
    record_diversity_dropped,
    record_feed_outcome,
    record_preference_load_failure,
    record_trending_request,
    traced,
    track_feed_request,
)
from .models import FeedOptions, FeedPost, FeedResult, UserPreferences
from .pagination import paginate
from .persistence import CandidatePool, CandidateQuery, FeedDataSource, FollowingType
from .scoring import score_posts
from .utils import normalize_slug, utc_now

logger = logging.getLogger(__name__)


async def _load_or_empty(name: str, user_id: str, fetch: Awaitable[Set[str]]) -> Set[str]:
    """Await one preference fetch, degrading to an empty set on failure."""
    try:
        return set(await fetch)
    except Exception as e:
        logger.warning(f"Failed to load {name} for user {user_id}, continuing without them: {e}")
        record_preference_load_failure(name)
        return set()


async def load_preferences(data_source: FeedDataSource, user_id: str) -> UserPreferences:
    """Load a user's follows and reading history.

    The four fetches run concurrently. Each one that fails is logged and
    replaced with an empty set; a new user simply gets four empty sets.

    Args:
        data_source: Where to read from.
        user_id: The user.

    Returns:
        UserPreferences for the user.
    """
    authors, categories, tags, history = await asyncio.gather(
        _load_or_empty("authors", user_id, data_source.load_followed_ids(user_id, FollowingType.USER)),
        _load_or_empty("categories", user_id, data_source.load_followed_ids(user_id, FollowingType.CATEGORY)),
        _load_or_empty("tags", user_id, data_source.load_followed_ids(user_id, FollowingType.TAG)),
        _load_or_empty("reading_history", user_id, data_source.load_reading_history(user_id)),
    )

    return UserPreferences(
        followed_authors=authors,
        followed_categories=categories,
        followed_tags=tags,
        reading_history=history,
    )


async def fetch_candidate_pool(
    data_source: FeedDataSource,
    options: FeedOptions,
    preferences: UserPreferences,
) -> CandidatePool:
    """Fetch the candidate pool for a feed request.

    The pool is capped at min(limit * 3, 100) regardless of page. The tag
    filter is applied here, after the fetch, so it only sees the capped pool.
    Errors from the data source propagate.

    Args:
        data_source: Where to read from.
        options: The feed request.
        preferences: The user's preferences (used for excluding read posts).

    Returns:
        CandidatePool with the backend's announced count for the filter.
    """
    query = CandidateQuery(
        category=normalize_slug(options.category),
        author=options.author.strip() if options.author and options.author.strip() else None,
        exclude_ids=preferences.reading_history if options.exclude_read else set(),
        limit=candidate_pool_size(options.limit),
    )

    pool = await data_source.fetch_candidates(query)

    tag = normalize_slug(options.tag)
    if tag is not None:
        posts = [post for post in pool.posts if any(t.slug == tag for t in post.tags)]
        logger.debug(f"Tag filter '{tag}' kept {len(posts)} of {len(pool.posts)} candidates")
        pool = CandidatePool(posts=posts, total_count=pool.total_count)

    return pool


class FeedService:
    """Service for ranking personalized feeds.

    Attributes:
        data_source: The data source all reads go through.
        weights: Scoring weights.
        max_consecutive_same_author: Size of the author diversity window.
    """

    def __init__(
        self,
        data_source: FeedDataSource,
        weights: Optional[FeedWeights] = None,
        max_consecutive_same_author: int = MAX_CONSECUTIVE_SAME_AUTHOR,
    ):
        """Initialize the feed service.

        Args:
            data_source: The data source to read from.
            weights: Scoring weights. Loaded from FEED_RANKER_WEIGHTS_FILE
                (or the defaults) when omitted.
            max_consecutive_same_author: Size of the author diversity window.
        """
        self.data_source = data_source
        self.weights = weights or load_feed_weights()
        self.max_consecutive_same_author = max_consecutive_same_author

    async def load_preferences(self, user_id: str) -> UserPreferences:
        """Load a user's follows and reading history."""
        return await load_preferences(self.data_source, user_id)

    async def fetch_candidates(self, options: FeedOptions, preferences: UserPreferences) -> CandidatePool:
        """Fetch the candidate pool for a feed request."""
        return await fetch_candidate_pool(self.data_source, options, preferences)

    async def get_feed_posts(self, options: FeedOptions) -> FeedResult:
        """Get one page of the personalized feed.

        Args:
            options: The feed request.

        Returns:
            FeedResult for the requested page.
        """
        with track_feed_request(options.user_id) as span:
            preferences = await self.load_preferences(options.user_id)
            pool = await self.fetch_candidates(options, preferences)
            record_candidate_pool(len(pool.posts))

            if not pool.posts:
                logger.info(f"No candidates for user {options.user_id} (page {options.page})")
                record_feed_outcome("empty")
                return FeedResult.empty(options.page)

            scored = score_posts(pool.posts, preferences, self.weights, utc_now())

            diversity = diversify(
                scored,
                stop_after=options.limit * options.page,
                max_consecutive=self.max_consecutive_same_author,
            )
            record_diversity_dropped(diversity.dropped)

            result = paginate(diversity.posts, options.page, options.limit, pool.total_count)

            span.set_attribute("feed.candidates", len(pool.posts))
            span.set_attribute("feed.returned", len(result.posts))
            record_feed_outcome("ranked")
            logger.info(
                f"Ranked feed for user {options.user_id}: page {result.page}/{result.total_pages}, "
                f"{len(result.posts)} posts from {len(pool.posts)} candidates"
            )
            return result

    @traced("feed.trending")
    async def get_trending_posts(self, limit: int = DEFAULT_TRENDING_LIMIT) -> List[FeedPost]:
        """Get trending posts from the last week.

        Ordered by reactions, then comments, then views; no relevance scoring.

        Args:
            limit: Maximum number of posts.

        Returns:
            List of trending posts.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        record_trending_request()
        since = utc_now() - timedelta(days=TRENDING_WINDOW_DAYS)
        return await self.data_source.fetch_trending(since, limit)


async def get_feed_posts(options: FeedOptions, data_source: FeedDataSource) -> FeedResult:
    """Get one page of the personalized feed using the configured weights."""
    return await FeedService(data_source).get_feed_posts(options)


async def get_trending_posts(data_source: FeedDataSource, limit: int = DEFAULT_TRENDING_LIMIT) -> List[FeedPost]:
    """Get trending posts from the last week."""
    return await FeedService(data_source).get_trending_posts(limit)

"""Relevance scoring for personalized feeds.

Each candidate receives an additive score built from independent signals:

1. Recency, decaying linearly to zero over the recency window.
2. A flat bonus when the author is followed.
3. A flat bonus when the category is followed.
4. A bonus per followed tag on the post.
5. Log-scaled engagement (reactions, comments, views).
6. A flat bonus for posts the user has not read.
7. Reading-time shaping (quick and optimal reads up, very long reads down).

Scores are not normalized or clamped. The only negative contribution is the
long-read penalty.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional

from .config import DEFAULT_FEED_WEIGHTS, FeedWeights
from .models import FeedPost, UserPreferences
from .utils import days_since, utc_now

logger = logging.getLogger(__name__)


def recency_score(published_at: datetime, now: datetime, weights: FeedWeights = DEFAULT_FEED_WEIGHTS) -> float:
    """Score contribution from how recently the post was published."""
    age_days = days_since(published_at, now)
    return max(0.0, 1 - age_days / weights.recency_window_days) * weights.recency_max


def engagement_score(post: FeedPost, weights: FeedWeights = DEFAULT_FEED_WEIGHTS) -> float:
    """Log-scaled engagement so viral posts don't drown everything else out."""
    engagement = (
        post.reaction_count + post.comment_count * weights.comment_weight + post.view_count / weights.view_divisor
    )
    return math.log(engagement + 1) * weights.engagement_multiplier


def reading_time_score(reading_time: Optional[float], weights: FeedWeights = DEFAULT_FEED_WEIGHTS) -> float:
    """Score adjustment for the estimated reading time in minutes.

    Missing (or zero) reading times contribute nothing.
    """
    if not reading_time:
        return 0.0

    buckets = weights.reading_time_buckets
    if reading_time <= buckets.quick_max:
        return float(buckets.quick_bonus)
    if reading_time <= buckets.optimal_max:
        return float(buckets.optimal_bonus)
    if reading_time > buckets.long_min:
        return -float(buckets.long_penalty)
    return 0.0


def calculate_relevance_score(
    post: FeedPost,
    preferences: UserPreferences,
    weights: FeedWeights = DEFAULT_FEED_WEIGHTS,
    now: Optional[datetime] = None,
) -> float:
    """Calculate the relevance score of a post for a user.

    Args:
        post: The candidate post.
        preferences: The user's follows and reading history.
        weights: Scoring weights (default: DEFAULT_FEED_WEIGHTS).
        now: Reference time for recency. Read from the clock when omitted.

    Returns:
        The relevance score.
    """
    if now is None:
        now = utc_now()

    score = recency_score(post.published_at, now, weights)

    if post.author.id in preferences.followed_authors:
        score += weights.author_bonus

    if post.category is not None and post.category.id in preferences.followed_categories:
        score += weights.category_bonus

    matched_tags = sum(1 for tag in post.tags if tag.id in preferences.followed_tags)
    score += matched_tags * weights.per_tag_bonus

    score += engagement_score(post, weights)

    if post.id not in preferences.reading_history:
        score += weights.unread_bonus

    score += reading_time_score(post.reading_time, weights)

    return score


def score_posts(
    posts: Iterable[FeedPost],
    preferences: UserPreferences,
    weights: FeedWeights = DEFAULT_FEED_WEIGHTS,
    now: Optional[datetime] = None,
) -> List[FeedPost]:
    """Score posts and sort them by descending relevance.

    The sort is stable, so equally scored posts keep their incoming
    (publish time) order.

    Args:
        posts: Candidate posts.
        preferences: The user's follows and reading history.
        weights: Scoring weights.
        now: Reference time for recency. Read from the clock when omitted.

    Returns:
        Copies of the posts with relevance_score set, highest first.
    """
    if now is None:
        now = utc_now()

    scored = [post.with_score(calculate_relevance_score(post, preferences, weights, now)) for post in posts]
    scored.sort(key=lambda p: p.relevance_score or 0, reverse=True)

    if scored:
        logger.debug(
            f"Scored {len(scored)} posts (top={scored[0].relevance_score:.2f}, "
            f"bottom={scored[-1].relevance_score:.2f})"
        )
    return scored

"""Configuration settings for the Feed Ranker."""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

import yaml

# Pagination defaults
DEFAULT_PAGE: int = 1
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# Candidate pool is limit * multiplier, capped at MAX_CANDIDATE_POOL
CANDIDATE_POOL_MULTIPLIER: int = 3
MAX_CANDIDATE_POOL: int = 100

# Diversity window (last N accepted posts)
MAX_CONSECUTIVE_SAME_AUTHOR: int = 2

# Trending window (in days)
TRENDING_WINDOW_DAYS: int = 7
DEFAULT_TRENDING_LIMIT: int = 20

# Only posts with this status are ever ranked
PUBLISHED_STATUS: str = "published"

# Data source selection (environment variable names)
BACKEND_ENV: str = "FEED_RANKER_BACKEND"
DB_PATH_ENV: str = "FEED_RANKER_DB_PATH"

# Storage defaults (can be overridden via environment variables)
DEFAULT_DB_PATH: str = os.environ.get(DB_PATH_ENV, "./data/feed.db")

# Optional YAML file with weight overrides
WEIGHTS_FILE_ENV: str = "FEED_RANKER_WEIGHTS_FILE"


@dataclass(frozen=True)
class ReadingTimeBuckets:
    """Reading-time shaping thresholds (minutes) and their score adjustments.

    Attributes:
        quick_max: Upper bound (inclusive) for quick reads.
        quick_bonus: Bonus for quick reads.
        optimal_max: Upper bound (inclusive) for optimal-length reads.
        optimal_bonus: Bonus for optimal-length reads.
        long_min: Reads strictly longer than this are penalized.
        long_penalty: Amount subtracted for very long reads.
    """

    quick_max: float = 5
    quick_bonus: float = 10
    optimal_max: float = 15
    optimal_bonus: float = 15
    long_min: float = 30
    long_penalty: float = 5

    def __post_init__(self) -> None:
        if not (0 < self.quick_max < self.optimal_max <= self.long_min):
            raise ValueError(
                "ReadingTimeBuckets thresholds must satisfy 0 < quick_max < optimal_max <= long_min, "
                f"got {self.quick_max}, {self.optimal_max}, {self.long_min}"
            )


@dataclass(frozen=True)
class FeedWeights:
    """Tuning constants for the relevance scorer.

    Attributes:
        recency_max: Score for a post published right now.
        recency_window_days: Days over which the recency score decays to zero.
        author_bonus: Flat bonus for a followed author.
        category_bonus: Flat bonus for a followed category.
        per_tag_bonus: Bonus per followed tag on the post.
        engagement_multiplier: Multiplier for the log-scaled engagement.
        comment_weight: Weight of a comment relative to a reaction.
        view_divisor: Views are divided by this before being added to engagement.
        unread_bonus: Flat bonus for posts not in the reading history.
        reading_time_buckets: Reading-time shaping thresholds.
    """

    recency_max: float = 30
    recency_window_days: float = 7
    author_bonus: float = 50
    category_bonus: float = 30
    per_tag_bonus: float = 15
    engagement_multiplier: float = 10
    comment_weight: float = 2
    view_divisor: float = 10
    unread_bonus: float = 20
    reading_time_buckets: ReadingTimeBuckets = field(default_factory=ReadingTimeBuckets)

    def __post_init__(self) -> None:
        if self.recency_window_days <= 0:
            raise ValueError(f"recency_window_days must be positive, got {self.recency_window_days}")
        if self.view_divisor <= 0:
            raise ValueError(f"view_divisor must be positive, got {self.view_divisor}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert weights to a plain dictionary (nested buckets included)."""
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "reading_time_buckets"}
        data["reading_time_buckets"] = {
            f.name: getattr(self.reading_time_buckets, f.name) for f in fields(self.reading_time_buckets)
        }
        return data


DEFAULT_FEED_WEIGHTS = FeedWeights()


def feed_weights_from_dict(data: Dict[str, Any], base: Optional[FeedWeights] = None) -> FeedWeights:
    """Build FeedWeights from a mapping of overrides.

    Args:
        data: Mapping of weight names to values. ``reading_time_buckets`` may be
            a nested mapping.
        base: Weights to apply the overrides to (default: DEFAULT_FEED_WEIGHTS).

    Returns:
        A new FeedWeights instance.

    Raises:
        ValueError: If an unknown weight name is given or a value is invalid.
    """
    base = base or DEFAULT_FEED_WEIGHTS
    known = {f.name for f in fields(FeedWeights)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown feed weights: {', '.join(sorted(unknown))}")

    overrides = dict(data)
    buckets = overrides.pop("reading_time_buckets", None)
    if buckets is not None:
        bucket_names = {f.name for f in fields(ReadingTimeBuckets)}
        unknown_buckets = set(buckets) - bucket_names
        if unknown_buckets:
            raise ValueError(f"Unknown reading time buckets: {', '.join(sorted(unknown_buckets))}")
        overrides["reading_time_buckets"] = replace(base.reading_time_buckets, **buckets)

    return replace(base, **overrides)


def load_feed_weights(path: Optional[str] = None) -> FeedWeights:
    """Load feed weights from a YAML file.

    If path is None, the FEED_RANKER_WEIGHTS_FILE environment variable is used.
    With neither set, the default weights are returned.

    Args:
        path: Path to a YAML file containing a mapping of weight overrides.

    Returns:
        FeedWeights instance.

    Raises:
        ValueError: If the file does not contain a mapping.
    """
    path = path or os.environ.get(WEIGHTS_FILE_ENV)
    if not path:
        return DEFAULT_FEED_WEIGHTS

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Feed weights file {path} must contain a mapping")

    return feed_weights_from_dict(data)


def candidate_pool_size(limit: int) -> int:
    """Number of candidates fetched for a page of ``limit`` posts."""
    return min(limit * CANDIDATE_POOL_MULTIPLIER, MAX_CANDIDATE_POOL)

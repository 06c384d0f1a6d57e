"""Feed Ranker package.

Personalized, author-diversified ranking of published posts.

Requires Python 3.9 or higher.
"""

from .config import (
    DEFAULT_FEED_WEIGHTS,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_CONSECUTIVE_SAME_AUTHOR,
    FeedWeights,
    ReadingTimeBuckets,
    candidate_pool_size,
    feed_weights_from_dict,
    load_feed_weights,
)
from .diversity import DiversityResult, diversify
from .feed_api import FeedService, fetch_candidate_pool, get_feed_posts, get_trending_posts, load_preferences
from .models import Author, Category, FeedOptions, FeedPost, FeedResult, Tag, UserPreferences
from .pagination import paginate
from .persistence import (
    CandidatePool,
    CandidateQuery,
    DataSourceConfig,
    FeedDataSource,
    FollowingType,
    MemoryDataSource,
    PostCreate,
    PostStatus,
    SQLiteDataSource,
    create_data_source,
    get_data_source_type,
)
from .scoring import calculate_relevance_score, engagement_score, reading_time_score, recency_score, score_posts
from .seed import load_fixture, seed_data_source
from .utils import normalize_slug, slugify, utc_now

# Metrics and Observability
from .metrics import (
    get_tracer,
    record_preference_load_failure,
    set_system_info,
    track_api_request,
    track_data_source_operation,
    track_feed_request,
    traced,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "DEFAULT_FEED_WEIGHTS",
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_SIZE",
    "MAX_CONSECUTIVE_SAME_AUTHOR",
    "FeedWeights",
    "ReadingTimeBuckets",
    "candidate_pool_size",
    "feed_weights_from_dict",
    "load_feed_weights",
    # Models
    "Author",
    "Category",
    "Tag",
    "FeedPost",
    "FeedOptions",
    "FeedResult",
    "UserPreferences",
    # Ranking pipeline
    "calculate_relevance_score",
    "recency_score",
    "engagement_score",
    "reading_time_score",
    "score_posts",
    "diversify",
    "DiversityResult",
    "paginate",
    # Feed service
    "FeedService",
    "load_preferences",
    "fetch_candidate_pool",
    "get_feed_posts",
    "get_trending_posts",
    # Data sources
    "FeedDataSource",
    "DataSourceConfig",
    "create_data_source",
    "get_data_source_type",
    "CandidatePool",
    "CandidateQuery",
    "FollowingType",
    "PostCreate",
    "PostStatus",
    "MemoryDataSource",
    "SQLiteDataSource",
    # Seeding
    "load_fixture",
    "seed_data_source",
    # Utils
    "normalize_slug",
    "slugify",
    "utc_now",
    # Metrics and Observability
    "get_tracer",
    "traced",
    "track_feed_request",
    "track_data_source_operation",
    "track_api_request",
    "record_preference_load_failure",
    "set_system_info",
]

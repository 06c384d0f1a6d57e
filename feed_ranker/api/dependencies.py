"""Dependency injection for the API layer.

This module provides dependency injection for the data source and the feed service.
"""

from typing import Generator, Optional

from fastapi import Depends

from ..config import FeedWeights, load_feed_weights
from ..feed_api import FeedService
from ..persistence import FeedDataSource, create_data_source

# Global instances (can be replaced for testing)
_data_source: Optional[FeedDataSource] = None
_weights: Optional[FeedWeights] = None


def get_data_source() -> Generator[FeedDataSource, None, None]:
    """Get the data source instance.

    This is a FastAPI dependency that provides the data source, created from
    the environment on first use.
    """
    global _data_source
    if _data_source is None:
        _data_source = create_data_source()
    yield _data_source


def get_weights() -> FeedWeights:
    """Get the scoring weights (FEED_RANKER_WEIGHTS_FILE or defaults)."""
    global _weights
    if _weights is None:
        _weights = load_feed_weights()
    return _weights


def get_feed_service(
    data_source: FeedDataSource = Depends(get_data_source),
    weights: FeedWeights = Depends(get_weights),
) -> FeedService:
    """Build a feed service for one request."""
    return FeedService(data_source, weights=weights)


def set_data_source(data_source: FeedDataSource) -> None:
    """Set the data source instance (for testing)."""
    global _data_source
    _data_source = data_source


def set_weights(weights: FeedWeights) -> None:
    """Set the scoring weights (for testing)."""
    global _weights
    _weights = weights


async def reset_dependencies() -> None:
    """Close and reset all dependencies (for testing)."""
    global _data_source, _weights
    if _data_source is not None:
        await _data_source.close()
        _data_source = None
    _weights = None

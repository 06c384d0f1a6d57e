"""API layer for the Feed Ranker.

This module provides the RESTful API endpoints for the personalized feed,
trending posts and health checks.
"""

from .app import create_app
from .dependencies import get_data_source, get_feed_service, reset_dependencies, set_data_source, set_weights
from .routes import router

__all__ = [
    "create_app",
    "router",
    "get_data_source",
    "get_feed_service",
    "set_data_source",
    "set_weights",
    "reset_dependencies",
]

"""FastAPI application factory for the Feed Ranker API.

This module provides the main application factory with OpenAPI documentation,
CORS configuration, metrics middleware and the Prometheus endpoint.
"""

import logging
import time
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..metrics import set_system_info, track_api_request
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    title: str = "Feed Ranker API",
    description: str = "Personalized, author-diversified article feeds and trending posts",
    version: str = "0.1.0",
    enable_cors: bool = True,
    cors_origins: Optional[List[str]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        title: API title for OpenAPI docs.
        description: API description for OpenAPI docs.
        version: API version.
        enable_cors: Whether to enable CORS middleware.
        cors_origins: List of allowed CORS origins.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title=title,
        description=description,
        version=version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {
                "name": "feed",
                "description": "Personalized feed ranking and trending posts",
            },
        ],
    )

    set_system_info(version=version)

    if enable_cors:
        origins = cors_origins or ["*"]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Middleware to track API request metrics."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Track metrics for API endpoints (exclude /metrics itself)
        if not request.url.path.startswith("/metrics"):
            track_api_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration=duration,
            )

        return response

    app.include_router(router)

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": title,
            "version": version,
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Expose Prometheus metrics."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    logger.info(f"Created FastAPI app: {title} v{version}")
    return app

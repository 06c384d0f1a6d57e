#!/usr/bin/env python3
"""Feed Ranker API Server.

Runs the feed API under uvicorn. Data source and weight settings given on the
command line are exported as environment variables so every worker process
builds the same configuration.

Usage:
    python -m feed_ranker.server [--host HOST] [--port PORT] [--backend sqlite --db-path PATH]

    or:

    uvicorn feed_ranker.api:create_app --factory --host 0.0.0.0 --port 8000
"""

import argparse
import logging
import os

import uvicorn

from .config import BACKEND_ENV, DB_PATH_ENV, WEIGHTS_FILE_ENV, load_feed_weights

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the server command."""
    parser = argparse.ArgumentParser(
        description="Feed Ranker API Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    # Serve the default SQLite database on localhost:8000
    python -m feed_ranker.server

    # Serve a specific database with tuned weights
    python -m feed_ranker.server --db-path ./data/staging.db --weights weights.yaml

    # Auto-reload for development
    python -m feed_ranker.server --reload --log-level debug

Environment:
    DATABASE_URL        PostgreSQL connection string (selects the postgres backend)
    {BACKEND_ENV:<19} Data source type: memory, sqlite or postgres
    {DB_PATH_ENV:<19} SQLite database path (default: ./data/feed.db)
    {WEIGHTS_FILE_ENV:<19} YAML file with scoring weight overrides
""",
    )
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes (default: 1)")
    parser.add_argument(
        "--backend",
        type=str,
        default=None,
        choices=["memory", "sqlite", "postgres"],
        help="Data source type (default: DATABASE_URL or SQLite)",
    )
    parser.add_argument("--db-path", type=str, default=None, help="SQLite database path")
    parser.add_argument("--weights", type=str, default=None, help="YAML file with scoring weight overrides")
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    return parser


def main():
    """Main entry point for the API server."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.backend:
        os.environ[BACKEND_ENV] = args.backend
    if args.db_path:
        os.environ[DB_PATH_ENV] = args.db_path
    if args.weights:
        # Fail before binding the port if the file is unreadable or invalid
        load_feed_weights(args.weights)
        os.environ[WEIGHTS_FILE_ENV] = args.weights

    if args.backend == "memory" and args.workers > 1:
        logger.warning("Each worker gets its own empty in-memory data source")

    logger.info(f"Serving Feed Ranker API on http://{args.host}:{args.port} (docs at /docs)")

    uvicorn.run(
        "feed_ranker.api.app:create_app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=args.log_level,
        factory=True,
    )


if __name__ == "__main__":
    main()

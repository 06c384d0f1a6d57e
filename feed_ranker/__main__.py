#!/usr/bin/env python3
"""Feed Ranker - CLI entrypoint for ranking a user's feed."""

import argparse
import asyncio
import json
import logging
import sys

from .config import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, DEFAULT_TRENDING_LIMIT, load_feed_weights
from .feed_api import FeedService
from .models import FeedOptions, FeedPost
from .persistence import create_data_source
from .seed import load_fixture, seed_data_source

logger = logging.getLogger(__name__)


def format_post(position: int, post: FeedPost) -> str:
    """Format one post as a line of CLI output."""
    score = f"{post.relevance_score:7.2f}  " if post.relevance_score is not None else ""
    category = post.category.slug if post.category else "-"
    return (
        f"  {position:>3}. {score}{post.title[:50]:<50}  @{post.author.username}  [{category}]  "
        f"{post.reaction_count}r/{post.comment_count}c/{post.view_count}v"
    )


async def run(args: argparse.Namespace) -> int:
    """Execute the CLI command against the configured data source."""
    data_source = create_data_source(args.backend, db_path=args.db_path)
    await data_source.initialize()

    try:
        if args.seed:
            counts = await seed_data_source(data_source, load_fixture(args.seed))
            print("Seeded: " + ", ".join(f"{k}={v}" for k, v in counts.items()), file=sys.stderr)

        service = FeedService(data_source, weights=load_feed_weights(args.weights))

        if args.trending:
            posts = await service.get_trending_posts(args.limit or DEFAULT_TRENDING_LIMIT)
            if args.json:
                print(json.dumps([p.model_dump(mode="json", exclude={"relevance_score"}) for p in posts], indent=2))
            else:
                print(f"Trending posts ({len(posts)}):")
                for i, post in enumerate(posts, 1):
                    print(format_post(i, post))
            return 0

        if not args.user_id:
            print("Error: --user-id is required unless --trending is given")
            return 2

        options = FeedOptions(
            user_id=args.user_id,
            page=args.page,
            limit=args.limit or DEFAULT_PAGE_SIZE,
            exclude_read=args.exclude_read,
            category=args.category,
            tag=args.tag,
            author=args.author,
        )
        result = await service.get_feed_posts(options)

        if args.json:
            print(result.model_dump_json(by_alias=True, indent=2))
        else:
            print(
                f"Feed for {options.user_id} - page {result.page}/{result.total_pages} "
                f"({result.total} total, has more: {result.has_more})"
            )
            offset = (result.page - 1) * options.limit
            for i, post in enumerate(result.posts, offset + 1):
                print(format_post(i, post))
        return 0
    finally:
        await data_source.close()


def main():
    """Main entry point for the Feed Ranker CLI."""
    parser = argparse.ArgumentParser(
        description="Feed Ranker - Personalized feed ranking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Rank the first page for a user from the default SQLite database
  python -m feed_ranker --user-id 3f2a...

  # Second page of ten, only unread posts tagged "python"
  python -m feed_ranker --user-id 3f2a... --page 2 --limit 10 --exclude-read --tag python

  # Load demo data into an in-memory source and show trending posts
  python -m feed_ranker --backend memory --seed demo.yaml --trending
""",
    )
    parser.add_argument("--user-id", type=str, default=None, help="User to rank the feed for")
    parser.add_argument(
        "--page",
        type=int,
        default=DEFAULT_PAGE,
        help=f"Page number (default: {DEFAULT_PAGE})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help=f"Posts per page (default: {DEFAULT_PAGE_SIZE}, or {DEFAULT_TRENDING_LIMIT} for --trending)",
    )
    parser.add_argument("--exclude-read", action="store_true", help="Leave out posts the user has read")
    parser.add_argument("--category", type=str, default=None, help="Filter by category slug")
    parser.add_argument("--tag", type=str, default=None, help="Filter by tag slug")
    parser.add_argument("--author", type=str, default=None, help="Filter by author username")
    parser.add_argument("--trending", action="store_true", help="Show trending posts instead of a feed")
    parser.add_argument(
        "--backend",
        type=str,
        default=None,
        choices=["memory", "sqlite", "postgres"],
        help="Data source type (default: DATABASE_URL or SQLite)",
    )
    parser.add_argument("--db-path", type=str, default=None, help="SQLite database path")
    parser.add_argument("--seed", type=str, default=None, help="YAML fixture to load before ranking")
    parser.add_argument("--weights", type=str, default=None, help="YAML file with scoring weight overrides")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if args.page < 1 or (args.limit is not None and args.limit < 1):
        print("Error: --page and --limit must be at least 1")
        sys.exit(2)

    try:
        exit_code = asyncio.run(run(args))
    except Exception as e:
        logger.debug("Feed ranking failed", exc_info=True)
        print(f"Error: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

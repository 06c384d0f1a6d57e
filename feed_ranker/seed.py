"""Load fixture data into a data source from YAML.

The fixture is a mapping with optional ``authors``, ``categories``, ``tags``,
``posts``, ``follows`` and ``reads`` lists. Posts may give ``published_at`` as
an ISO timestamp or ``age_days`` relative to now, which keeps demo data fresh.

Example:
    authors:
      - {id: a1, username: ada, display_name: Ada}
    posts:
      - {id: p1, title: Hello, author_id: a1, age_days: 1, reading_time: 4}
    follows:
      - {follower_id: u1, following_type: user, following_id: a1}
"""

import logging
from datetime import timedelta
from typing import Any, Dict

import yaml

from .models import Author, Category, Tag
from .persistence import FeedDataSource, FollowingType, PostCreate
from .utils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def load_fixture(path: str) -> Dict[str, Any]:
    """Read a YAML fixture file.

    Raises:
        ValueError: If the file does not contain a mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Fixture {path} must contain a mapping")
    return data


def _post_from_fixture(item: Dict[str, Any]) -> PostCreate:
    item = dict(item)
    age_days = item.pop("age_days", None)
    if "published_at" in item:
        item["published_at"] = parse_timestamp(item["published_at"])
    elif age_days is not None:
        item["published_at"] = utc_now() - timedelta(days=float(age_days))
    else:
        raise ValueError(f"Post {item.get('id') or item.get('title')} needs published_at or age_days")
    return PostCreate(**item)


async def seed_data_source(data_source: FeedDataSource, data: Dict[str, Any]) -> Dict[str, int]:
    """Write fixture data into a data source.

    Args:
        data_source: The data source to write to.
        data: Parsed fixture mapping.

    Returns:
        Number of rows written per section.
    """
    counts = {}

    for author in data.get("authors", []):
        await data_source.add_author(Author(**author))
    counts["authors"] = len(data.get("authors", []))

    for category in data.get("categories", []):
        await data_source.add_category(Category(**category))
    counts["categories"] = len(data.get("categories", []))

    for tag in data.get("tags", []):
        await data_source.add_tag(Tag(**tag))
    counts["tags"] = len(data.get("tags", []))

    for post in data.get("posts", []):
        await data_source.add_post(_post_from_fixture(post))
    counts["posts"] = len(data.get("posts", []))

    for follow in data.get("follows", []):
        await data_source.add_follow(
            follow["follower_id"],
            FollowingType(follow["following_type"]),
            follow["following_id"],
        )
    counts["follows"] = len(data.get("follows", []))

    for read in data.get("reads", []):
        read_at = parse_timestamp(read["read_at"]) if read.get("read_at") else None
        await data_source.record_read(read["user_id"], read["post_id"], read_at)
    counts["reads"] = len(data.get("reads", []))

    logger.info("Seeded data source: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    return counts

"""Utility functions for the Feed Ranker."""

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from slugify import slugify as python_slugify

SECONDS_PER_DAY = 60 * 60 * 24


def slugify(text: str, max_length: int = 100) -> str:
    """Convert text to a URL-friendly slug.

    Args:
        text: The text to convert to a slug.
        max_length: Maximum length of the slug (default: 100).

    Returns:
        A URL-friendly slug version of the text.
    """
    return python_slugify(text, max_length=max_length)


def normalize_slug(value: Optional[str]) -> Optional[str]:
    """Clean up a slug filter coming from a request.

    Stored slugs are matched exactly, so the value is only stripped. Blank
    values become None so they are treated as "no filter".
    """
    if value is None:
        return None
    return value.strip() or None


def utc_now() -> datetime:
    """Get the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp (or pass a datetime through) as UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def days_since(published_at: datetime, now: datetime) -> float:
    """Fractional days elapsed between published_at and now."""
    return (ensure_utc(now) - ensure_utc(published_at)).total_seconds() / SECONDS_PER_DAY


def generate_id() -> str:
    """Generate a new identifier for stored rows."""
    return str(uuid.uuid4())

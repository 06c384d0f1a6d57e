"""Author diversity filter.

Walks the score-sorted candidates and keeps a post only if fewer than
``max_consecutive`` of the most recently accepted posts share its author.
Rejected posts are dropped for the whole pass; they are not deferred to a
later position. The walk stops as soon as ``stop_after`` posts are accepted,
so posts that would only surface on later pages are never considered.
"""

import logging
from collections import Counter
from typing import List, NamedTuple, Sequence

from .config import MAX_CONSECUTIVE_SAME_AUTHOR
from .models import FeedPost

logger = logging.getLogger(__name__)


class DiversityResult(NamedTuple):
    """Output of the diversity filter.

    Attributes:
        posts: Accepted posts, in order.
        dropped: Number of candidates rejected by the window.
        author_counts: Accepted posts per author id.
    """

    posts: List[FeedPost]
    dropped: int
    author_counts: Counter


def diversify(
    scored_posts: Sequence[FeedPost],
    stop_after: int,
    max_consecutive: int = MAX_CONSECUTIVE_SAME_AUTHOR,
) -> DiversityResult:
    """Limit runs of posts by the same author.

    Args:
        scored_posts: Posts sorted by descending relevance.
        stop_after: Stop once this many posts have been accepted.
        max_consecutive: Size of the look-back window and the per-author limit within it.

    Returns:
        DiversityResult with the accepted posts.
    """
    if max_consecutive < 1:
        raise ValueError(f"max_consecutive must be at least 1, got {max_consecutive}")

    accepted: List[FeedPost] = []
    author_counts: Counter = Counter()
    dropped = 0

    for post in scored_posts:
        if len(accepted) >= stop_after:
            break

        author_id = post.author.id
        recent = accepted[-max_consecutive:]
        if sum(1 for p in recent if p.author.id == author_id) < max_consecutive:
            accepted.append(post)
            author_counts[author_id] += 1
        else:
            dropped += 1

    logger.debug(
        f"Diversified {len(accepted)} posts from {len(author_counts)} authors, dropped {dropped} "
        f"(stop_after={stop_after})"
    )
    return DiversityResult(posts=accepted, dropped=dropped, author_counts=author_counts)

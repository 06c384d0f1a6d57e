"""Persistence models for the feed data sources.

These models describe what the ranking engine asks a data source for and
what the write side accepts when seeding posts, follows and reads.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from ..config import PUBLISHED_STATUS
from ..models import FeedPost


class FollowingType(str, Enum):
    """What a follow row points at."""

    USER = "user"
    CATEGORY = "category"
    TAG = "tag"


class PostStatus(str, Enum):
    """Lifecycle status of a post. Only published posts are ranked."""

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = PUBLISHED_STATUS
    ARCHIVED = "archived"


class CandidateQuery(BaseModel):
    """Filter for the candidate fetch.

    Attributes:
        category: Optional category slug.
        author: Optional author username.
        exclude_ids: Post ids to leave out (already-read posts).
        limit: Maximum number of posts to return.
    """

    category: Optional[str] = None
    author: Optional[str] = None
    exclude_ids: Set[str] = Field(default_factory=set)
    limit: int = Field(ge=1)


class CandidatePool(BaseModel):
    """Result of a candidate fetch.

    Attributes:
        posts: Published posts, newest first, at most ``limit`` of them.
        total_count: Number of rows matching the filter, ignoring the limit.
    """

    posts: List[FeedPost] = Field(default_factory=list)
    total_count: int = 0


class PostCreate(BaseModel):
    """Input model for storing a post.

    Attributes:
        title: Post title.
        slug: URL slug (derived from the title when omitted).
        author_id: Id of the author profile.
        category_id: Optional category id.
        tag_ids: Ids of attached tags.
        status: Lifecycle status.
        published_at: Publication timestamp.
        id: Optional explicit id (generated when omitted).
    """

    title: str
    author_id: str
    published_at: datetime
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    featured_image_url: Optional[str] = None
    reading_time: Optional[float] = None
    view_count: int = Field(default=0, ge=0)
    reaction_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    category_id: Optional[str] = None
    tag_ids: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.PUBLISHED
    id: Optional[str] = None

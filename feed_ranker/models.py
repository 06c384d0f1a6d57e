"""Pydantic models for the Feed Ranker."""

from datetime import datetime
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_PAGE, DEFAULT_PAGE_SIZE


class Author(BaseModel):
    """The author profile joined onto a post."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None


class Category(BaseModel):
    """The category joined onto a post."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str
    color: Optional[str] = None


class Tag(BaseModel):
    """A tag joined onto a post."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str


class FeedPost(BaseModel):
    """A published post as seen by the ranking engine.

    Posts are immutable during a ranking pass; scoring returns a copy with
    ``relevance_score`` set.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    featured_image_url: Optional[str] = None
    reading_time: Optional[float] = None  # minutes
    published_at: datetime
    view_count: int = 0
    reaction_count: int = 0
    comment_count: int = 0
    author: Author
    category: Optional[Category] = None
    tags: List[Tag] = Field(default_factory=list)
    relevance_score: Optional[float] = None

    def with_score(self, score: float) -> "FeedPost":
        """Return a copy of this post annotated with a relevance score."""
        return self.model_copy(update={"relevance_score": score})


class UserPreferences(BaseModel):
    """Follow-graph membership and reading history for one user.

    Attributes:
        followed_authors: Ids of followed authors.
        followed_categories: Ids of followed categories.
        followed_tags: Ids of followed tags.
        reading_history: Ids of posts the user has already read.
    """

    followed_authors: Set[str] = Field(default_factory=set)
    followed_categories: Set[str] = Field(default_factory=set)
    followed_tags: Set[str] = Field(default_factory=set)
    reading_history: Set[str] = Field(default_factory=set)

    def is_empty(self) -> bool:
        """Whether the user has no follows and no reading history."""
        return not (self.followed_authors or self.followed_categories or self.followed_tags or self.reading_history)


class FeedOptions(BaseModel):
    """Input for a personalized feed request."""

    user_id: str = Field(min_length=1)
    page: int = Field(default=DEFAULT_PAGE, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    exclude_read: bool = False
    category: Optional[str] = None
    tag: Optional[str] = None
    author: Optional[str] = None


class FeedResult(BaseModel):
    """One ranked page of the personalized feed."""

    model_config = ConfigDict(populate_by_name=True)

    posts: List[FeedPost]
    total: int
    page: int
    total_pages: int = Field(alias="totalPages")
    has_more: bool = Field(alias="hasMore")

    @classmethod
    def empty(cls, page: int) -> "FeedResult":
        """An empty page (no candidates at all)."""
        return cls(posts=[], total=0, page=page, total_pages=0, has_more=False)

"""Data models for the Notion blog sync pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ALL_CATEGORY = "All"
CONTENT_ERROR = "Error loading content"


class NormalizedPost(BaseModel):
    """Canonical blog post built from one Notion database page."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = "Untitled"
    date: str = "No date"
    iso_date: Optional[str] = Field(None, alias="isoDate")
    summary: str = ""
    category: str = "Uncategorized"
    slug: str = ""
    image_url: str = Field("/images/blog-placeholder.jpg", alias="imageUrl")
    min_read: str = Field("2 Min Read", alias="minRead")
    likes: int = 0
    comments: int = 0
    content: str = Field("", description="Rendered Markdown body of the page.")


class BatchResult(BaseModel):
    """The blog document written to the object store after a run."""

    model_config = ConfigDict(populate_by_name=True)

    posts: List[NormalizedPost]
    categories: List[str]
    total_posts: int = Field(..., alias="totalPosts")
    last_updated: str = Field(..., alias="lastUpdated")

    @model_validator(mode="after")
    def _check_invariants(self) -> "BatchResult":
        if self.total_posts != len(self.posts):
            raise ValueError(
                f"totalPosts ({self.total_posts}) does not match number of posts "
                f"({len(self.posts)})."
            )
        if len(set(self.categories)) != len(self.categories):
            raise ValueError("categories must not contain duplicates.")
        if ALL_CATEGORY not in self.categories:
            raise ValueError(f"categories must include {ALL_CATEGORY!r}.")
        return self

    @classmethod
    def from_posts(cls, posts: List[NormalizedPost], last_updated: str) -> "BatchResult":
        """Assemble a batch, collecting distinct categories in first-seen order."""
        categories = dict.fromkeys([ALL_CATEGORY])
        for post in posts:
            if post.category:
                categories.setdefault(post.category)
        return cls(
            posts=list(posts),
            categories=list(categories),
            total_posts=len(posts),
            last_updated=last_updated,
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class DatabaseQuery:
    """Parameters of a paginated Notion database query."""

    database_id: str
    filter: Optional[Dict[str, Any]] = None
    sorts: Optional[List[Dict[str, Any]]] = None
    page_size: int = 100

    def body(self, start_cursor: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"page_size": self.page_size}
        if self.filter:
            payload["filter"] = self.filter
        if self.sorts:
            payload["sorts"] = self.sorts
        if start_cursor:
            payload["start_cursor"] = start_cursor
        return payload


@dataclass
class PaginationResult:
    results: List[Dict[str, Any]]
    page_count: int

    @property
    def record_count(self) -> int:
        return len(self.results)


@dataclass
class StoredObject:
    key: str
    body: bytes
    content_type: str
    cache_control: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.body)


@dataclass
class ObjectSummary:
    key: str
    size: int
    uploaded: Optional[str] = None


@dataclass
class ObjectListing:
    objects: List[ObjectSummary] = field(default_factory=list)
    truncated: bool = False

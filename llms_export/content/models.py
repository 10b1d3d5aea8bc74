"""Data models for exportable content."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_MAX_WORDS = 500
PUBLISHED_STATUS = "publish"


class Item(BaseModel):
    """Snapshot of one exportable content item.

    Taken at enumeration time and never mutated; processing re-reads the
    live item from the content source.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[int, Field(ge=1, description="Item identifier (unique)")]
    type: Annotated[str, Field(min_length=1, description="Content type key")]
    title: str = Field(default="", description="Display title")
    raw_content: str = Field(default="", description="Body markup")
    excerpt: str = Field(default="", description="Author-written summary")
    permalink: Annotated[str, Field(min_length=1, description="Canonical URL")]
    slug: str = Field(default="", description="URL slug")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Creation timestamp used for ordering",
    )
    author: str | None = Field(default=None, description="Author display name")
    status: str = Field(default=PUBLISHED_STATUS, description="Publication status")
    password_protected: bool = Field(
        default=False, description="Access-restricted items are never exported"
    )
    noindex: bool = Field(
        default=False, description="Items opted out of indexing are never exported"
    )
    taxonomies: dict[str, list[str]] = Field(
        default_factory=dict, description="Taxonomy name to term names"
    )

    @property
    def is_published(self) -> bool:
        """Check if the item is publicly published."""
        return self.status == PUBLISHED_STATUS


class ExtractionOptions(BaseModel):
    """Options controlling how an item is rendered to text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    include_meta: bool = False
    include_taxonomies: bool = False
    include_excerpts: bool = True
    max_words: Annotated[int, Field(ge=1)] = DEFAULT_MAX_WORDS

"""Data models for the SQLite state store."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ItemArtifactRecord(BaseModel):
    """Per-item artifact metadata.

    Keyed by item id. Read on every run to decide whether the item's
    current content was already uploaded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_id: Annotated[int, Field(ge=1, description="Item identifier (primary key)")]
    content_hash: Annotated[
        str, Field(min_length=1, description="Hash of the uploaded artifact text")
    ]
    artifact_url: Annotated[
        str, Field(min_length=1, description="URL returned by the artifact store")
    ]
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the artifact was uploaded",
    )
    size: Annotated[int, Field(ge=0, description="Artifact size in bytes")]


class ManifestRecord(BaseModel):
    """History entry for one finalized manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    generated_at: datetime = Field(description="When the manifest was written")
    path: Annotated[str, Field(min_length=1, description="Manifest file path")]
    size: Annotated[int, Field(ge=0, description="Manifest size in bytes")]
    items: Annotated[int, Field(ge=0, description="Links in the manifest")]

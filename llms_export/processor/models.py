"""Data models for per-item processing."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ExtractedContent(BaseModel):
    """Normalized text of an item with its digest.

    Recomputed from the live item on every attempt and never stored.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: Annotated[str, Field(min_length=1)]
    content_hash: Annotated[str, Field(min_length=32, max_length=32)]
    size: Annotated[int, Field(ge=1, description="UTF-8 byte length of text")]


class ProcessErrorClass(str, Enum):
    """Classification of item-level failures.

    - EMPTY_CONTENT: Extraction produced no text
    - ITEM_NOT_FOUND: The item disappeared between enumeration and processing
    - UPLOAD_FAILED, INVALID_RESPONSE, MISSING_URL: Upload errors passed through
    """

    EMPTY_CONTENT = "EMPTY_CONTENT"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    MISSING_URL = "MISSING_URL"


class ProcessError(BaseModel):
    """Typed item-level error. Recorded on the run; never raised."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: ProcessErrorClass
    message: Annotated[str, Field(min_length=1)]


class ProcessResult(BaseModel):
    """Outcome of processing one item."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_id: Annotated[int, Field(ge=1)]
    artifact_url: str | None = None
    size: Annotated[int, Field(ge=0)] = 0
    reused: bool = Field(
        default=False, description="True when the stored artifact was reused"
    )
    error: ProcessError | None = None

    @property
    def is_success(self) -> bool:
        """Check if the item has an artifact URL."""
        return self.error is None and self.artifact_url is not None

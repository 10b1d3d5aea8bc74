"""Data models for artifact uploads."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class UploadErrorClass(str, Enum):
    """Classification of upload errors.

    - UPLOAD_FAILED: Transport failure or non-200 response
    - INVALID_RESPONSE: Response body is not JSON
    - MISSING_URL: JSON response without a string ``url`` field
    """

    UPLOAD_FAILED = "UPLOAD_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    MISSING_URL = "MISSING_URL"


class UploadError(BaseModel):
    """Typed error from an upload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: UploadErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if a response arrived"
    )


class UploadResult(BaseModel):
    """Result of a single upload.

    Exactly one of ``url`` and ``error`` is set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: Annotated[str, Field(min_length=1)]
    url: str | None = Field(default=None, description="Stable artifact URL")
    tenant_id: str = Field(default="", description="Namespace the file was sent to")
    error: UploadError | None = Field(
        default=None, description="Error details if the upload failed"
    )

    @property
    def is_success(self) -> bool:
        """Check if the upload returned a URL."""
        return self.error is None and self.url is not None


class UploadRequest(BaseModel):
    """One file of a batch upload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    content: str
    filename: Annotated[str, Field(min_length=1)]

"""Data models for the progress of an export run."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from llms_export.content.models import ExtractionOptions


class RunStatus(str, Enum):
    """Lifecycle status of an export run."""

    INITIALIZING = "initializing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


ItemStatus = Literal["processing", "completed", "failed"]


class QueueEntry(BaseModel):
    """One item scheduled for processing within a run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_id: Annotated[int, Field(ge=1)]
    type: Annotated[str, Field(min_length=1)]
    title: str = ""
    options_snapshot: ExtractionOptions = Field(default_factory=ExtractionOptions)


class CurrentItem(BaseModel):
    """The item most recently claimed from the queue."""

    model_config = ConfigDict(extra="forbid")

    id: int
    type: str
    title: str = ""
    status: ItemStatus = "processing"
    attempts: Annotated[int, Field(ge=1)] = 1
    artifact_url: str | None = None
    error: str | None = None


class ErrorEntry(BaseModel):
    """An error recorded on the run.

    ``kind`` is ``item_error`` for a failed item and ``generation_error``
    when the run itself was aborted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["item_error", "generation_error"]
    message: str
    timestamp: datetime
    item_id: int | None = None
    item_type: str | None = None
    item_title: str | None = None


class CompletedSection(BaseModel):
    """A content type whose queue entries have all been processed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    name: str
    processed: Annotated[int, Field(ge=0)]
    completed_at: datetime


class RunState(BaseModel):
    """Persisted state of the single in-flight run.

    Serialized as JSON into the progress slot. The cursor only moves
    forward over the queue, and ``processed_count`` never exceeds
    ``total_count``.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    status: RunStatus = RunStatus.INITIALIZING
    queue: list[QueueEntry] = Field(default_factory=list)
    cursor: Annotated[int, Field(ge=0)] = 0
    processed_count: Annotated[int, Field(ge=0)] = 0
    total_count: Annotated[int, Field(ge=0)] = 0
    percentage: Annotated[int, Field(ge=0, le=100)] = 0
    current_operation: str = ""
    current_type: str | None = None
    current_item: CurrentItem | None = None
    completed_sections: list[CompletedSection] = Field(default_factory=list)
    succeeded_ids: list[int] = Field(default_factory=list)
    errors: list[ErrorEntry] = Field(default_factory=list)
    post_types: list[str] = Field(default_factory=list)
    options_snapshot: ExtractionOptions | None = None
    file_path: str | None = None
    file_size: int | None = None
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    failed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Check if the run has not reached a terminal status."""
        return self.status not in (RunStatus.COMPLETED, RunStatus.ERROR)

    @property
    def is_exhausted(self) -> bool:
        """Check if every queue entry has been claimed."""
        return self.cursor >= len(self.queue)

    @property
    def item_errors(self) -> list[ErrorEntry]:
        """Errors recorded for individual items."""
        return [error for error in self.errors if error.kind == "item_error"]


def compute_percentage(processed: int, total: int) -> int:
    """Return ``floor(min(100, processed * 100 / total))``, 0 when total is 0."""
    if total == 0:
        return 0
    return min(100, (processed * 100) // total)

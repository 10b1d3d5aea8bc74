"""Polling response models."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class ItemCounts(BaseModel):
    """Processed and total queue entries of a run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    parsed: Annotated[int, Field(ge=0)] = 0
    total: Annotated[int, Field(ge=0)] = 0


class LastItem(BaseModel):
    """Identity of the item handled by a step."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    id: int
    title: str = ""


class StepResponse(BaseModel):
    """Answer to one polling step.

    Serializes as ``{finished, items: {parsed, total}, last}``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    finished: bool
    items: ItemCounts = Field(default_factory=ItemCounts)
    last: LastItem | None = None

    @classmethod
    def idle(cls, parsed: int = 0, total: int = 0) -> "StepResponse":
        """Response for a step that found no run to advance."""
        return cls(finished=True, items=ItemCounts(parsed=parsed, total=total))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the polling contract dictionary."""
        return self.model_dump(mode="json")

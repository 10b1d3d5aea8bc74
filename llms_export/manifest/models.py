"""Data models for the manifest."""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ManifestLink(BaseModel):
    """One exported item: its display title and artifact URL."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    url: Annotated[str, Field(min_length=1)]


class ManifestSection(BaseModel):
    """Links of one content type under its display name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    links: list[ManifestLink] = Field(default_factory=list)


class Manifest(BaseModel):
    """The aggregated index of a finished run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    description: str = ""
    sections: list[ManifestSection] = Field(default_factory=list)
    generated_at: datetime

    @property
    def item_count(self) -> int:
        """Total number of links across sections."""
        return sum(len(section.links) for section in self.sections)


@dataclass
class GeneratedFile:
    """Information about a written file.

    Attributes:
        path: Path as written.
        bytes_written: Number of bytes written.
        sha256: SHA-256 checksum of content.
    """

    path: str
    bytes_written: int
    sha256: str


@dataclass
class GenerationStatus:
    """Summary of the last manifest generation.

    Attributes:
        last_generated: When the last manifest was written, if ever.
        file_exists: Whether the manifest file is present on disk.
        file_size: Size recorded at generation time, in bytes.
        items: Links in the last manifest.
        path: Manifest file path.
    """

    last_generated: datetime | None
    file_exists: bool
    file_size: int
    items: int
    path: str

    def to_dict(self) -> dict[str, str | int | bool | None]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "last_generated": (
                self.last_generated.isoformat() if self.last_generated else None
            ),
            "last_generated_hr": (
                self.last_generated.strftime("%Y-%m-%d %H:%M:%S")
                if self.last_generated
                else "Never"
            ),
            "file_exists": self.file_exists,
            "file_size": self.file_size,
            "items": self.items,
            "path": self.path,
        }

"""Export settings: which content is exported and how it is rendered."""

import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from llms_export.content.models import ExtractionOptions


logger = structlog.get_logger()

MIN_ITEMS_PER_TYPE = 1
MAX_ITEMS_PER_TYPE = 1000
DEFAULT_ITEMS_PER_TYPE = 50

_INVALID_KEY_CHARS = re.compile(r"[^a-z0-9_\-]")


def sanitize_key(value: str) -> str:
    """Lowercase a content type key and drop characters outside [a-z0-9_-]."""
    return _INVALID_KEY_CHARS.sub("", value.lower())


class ExportSettings(BaseModel):
    """User-facing export options.

    Values are sanitized and clamped on construction, so every instance
    that reaches the pipeline is already within bounds.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    post_types: list[str] = Field(default_factory=lambda: ["post", "page"])
    auto_update: bool = True
    include_excerpts: bool = True
    include_meta: bool = False
    include_taxonomies: bool = False
    max_posts_per_type: int = DEFAULT_ITEMS_PER_TYPE

    @field_validator("post_types", mode="before")
    @classmethod
    def sanitize_post_types(cls, v: Any) -> list[str]:
        """Sanitize type keys, dropping empties and duplicates."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        seen: list[str] = []
        for raw in v:
            key = sanitize_key(str(raw))
            if key and key not in seen:
                seen.append(key)
        return seen

    @field_validator("max_posts_per_type", mode="before")
    @classmethod
    def clamp_max_posts(cls, v: Any) -> int:
        """Clamp the per-type limit into 1..1000."""
        try:
            value = abs(int(v))
        except (TypeError, ValueError):
            value = DEFAULT_ITEMS_PER_TYPE
        return max(MIN_ITEMS_PER_TYPE, min(MAX_ITEMS_PER_TYPE, value))

    def extraction_options(self, max_words: int | None = None) -> ExtractionOptions:
        """Build extraction options from these settings.

        Args:
            max_words: Optional override for the body word cap.

        Returns:
            ExtractionOptions for the content source.
        """
        if max_words is None:
            return ExtractionOptions(
                include_meta=self.include_meta,
                include_taxonomies=self.include_taxonomies,
                include_excerpts=self.include_excerpts,
            )
        return ExtractionOptions(
            include_meta=self.include_meta,
            include_taxonomies=self.include_taxonomies,
            include_excerpts=self.include_excerpts,
            max_words=max_words,
        )


def load_export_settings(path: Path | None) -> ExportSettings:
    """Load export settings from a YAML file.

    Missing keys fall back to defaults. A missing path or file yields the
    default settings.

    Args:
        path: Path to the YAML settings file, or None.

    Returns:
        Validated export settings.
    """
    if path is None or not path.exists():
        return ExportSettings()

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    settings = ExportSettings.model_validate(data)
    logger.info(
        "export_settings_loaded",
        component="settings",
        path=str(path),
        post_types=settings.post_types,
        max_posts_per_type=settings.max_posts_per_type,
    )
    return settings

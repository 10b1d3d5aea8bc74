"""Content enumeration and text extraction.

This module provides:
- The Item snapshot and extraction option models
- Markup-to-Markdown conversion with whitespace normalization
- Word-capped, sentence-aware truncation
- The ContentSource protocol and a static, file-backed implementation
"""

from llms_export.content.errors import ContentSourceError
from llms_export.content.extract import (
    TRUNCATION_MARKER,
    extract_content,
    limit_words,
    process_body,
)
from llms_export.content.markup import html_to_markdown, normalize_whitespace
from llms_export.content.models import DEFAULT_MAX_WORDS, ExtractionOptions, Item
from llms_export.content.source import (
    ContentSource,
    InclusionPredicate,
    StaticContentSource,
)


__all__ = [
    # Errors
    "ContentSourceError",
    # Models
    "DEFAULT_MAX_WORDS",
    "ExtractionOptions",
    "Item",
    # Extraction
    "TRUNCATION_MARKER",
    "extract_content",
    "html_to_markdown",
    "limit_words",
    "normalize_whitespace",
    "process_body",
    # Sources
    "ContentSource",
    "InclusionPredicate",
    "StaticContentSource",
]

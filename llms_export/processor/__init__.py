"""Per-item export pipeline.

Extracts an item's text, hashes it, reuses the stored artifact when the
hash is unchanged and otherwise uploads, then records the result.
"""

from llms_export.processor.metrics import ProcessorMetrics
from llms_export.processor.models import (
    ExtractedContent,
    ProcessError,
    ProcessErrorClass,
    ProcessResult,
)
from llms_export.processor.processor import (
    ItemProcessor,
    Uploader,
    build_filename,
    slugify,
)


__all__ = [
    "ExtractedContent",
    "ItemProcessor",
    "ProcessError",
    "ProcessErrorClass",
    "ProcessResult",
    "ProcessorMetrics",
    "Uploader",
    "build_filename",
    "slugify",
]

"""Upload layer for the remote artifact store.

This module provides:
- A multipart upload client returning typed results instead of raising
- Sequential batch uploads with a pause between requests
- Header redaction for logging
- Metrics collection for observability
"""

from llms_export.artifacts.client import ArtifactClient
from llms_export.artifacts.constants import (
    BATCH_UPLOAD_DELAY_SECONDS,
    MAX_UPLOAD_TIMEOUT_SECONDS,
)
from llms_export.artifacts.metrics import UploadMetrics
from llms_export.artifacts.models import (
    UploadError,
    UploadErrorClass,
    UploadRequest,
    UploadResult,
)
from llms_export.artifacts.redact import redact_headers


__all__ = [
    # Client
    "ArtifactClient",
    # Constants
    "BATCH_UPLOAD_DELAY_SECONDS",
    "MAX_UPLOAD_TIMEOUT_SECONDS",
    # Metrics
    "UploadMetrics",
    # Models
    "UploadError",
    "UploadErrorClass",
    "UploadRequest",
    "UploadResult",
    # Redaction
    "redact_headers",
]

"""SQLite state store for the progress slot, artifact records and manifest history.

This module provides persistent storage for:
- The single progress slot of the in-flight export run, with expiry
- Per-item artifact records used to skip re-uploading unchanged content
- Manifest generation history
"""

from llms_export.store.errors import ConnectionError, MigrationError, StateStoreError
from llms_export.store.hash import compute_content_hash
from llms_export.store.metrics import StoreMetrics
from llms_export.store.models import ItemArtifactRecord, ManifestRecord
from llms_export.store.store import StateStore


__all__ = [
    # Errors
    "ConnectionError",
    "MigrationError",
    "StateStoreError",
    # Hash utilities
    "compute_content_hash",
    # Metrics
    "StoreMetrics",
    # Models
    "ItemArtifactRecord",
    "ManifestRecord",
    # Store
    "StateStore",
]

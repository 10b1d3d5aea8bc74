"""Durable progress tracking for the single in-flight export run.

This module provides:
- Run state models persisted as JSON in one expiring slot
- A forward-only run status state machine
- Queue claiming, per-item outcomes and run finalization
"""

from llms_export.progress.models import (
    CompletedSection,
    CurrentItem,
    ErrorEntry,
    QueueEntry,
    RunState,
    RunStatus,
    compute_percentage,
)
from llms_export.progress.state_machine import RunStatusError, RunStatusMachine
from llms_export.progress.store import (
    DEFAULT_PROGRESS_TTL,
    PROGRESS_SLOT_KEY,
    ProgressStore,
    format_estimate,
)


__all__ = [
    # Models
    "CompletedSection",
    "CurrentItem",
    "ErrorEntry",
    "QueueEntry",
    "RunState",
    "RunStatus",
    "compute_percentage",
    # State machine
    "RunStatusError",
    "RunStatusMachine",
    # Store
    "DEFAULT_PROGRESS_TTL",
    "PROGRESS_SLOT_KEY",
    "ProgressStore",
    "format_estimate",
]

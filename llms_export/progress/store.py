"""Single-slot progress store for the in-flight export run."""

import math
from collections.abc import Callable, Sequence
from datetime import timedelta

import structlog

from llms_export.content.models import ExtractionOptions
from llms_export.errors import SessionError
from llms_export.progress.models import (
    CompletedSection,
    CurrentItem,
    ErrorEntry,
    QueueEntry,
    RunState,
    RunStatus,
    compute_percentage,
)
from llms_export.progress.state_machine import RunStatusMachine
from llms_export.store.store import StateStore


logger = structlog.get_logger()

PROGRESS_SLOT_KEY = "llms_export_progress"
DEFAULT_PROGRESS_TTL = timedelta(hours=1)

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# Mutates a run state in place; returns False when nothing changed.
StateMutation = Callable[[RunState], bool]


class ProgressStore:
    """Durable progress of the one run that may be active system-wide.

    State lives in a single slot with a fixed key, so whoever initializes
    the slot owns the run. Every write refreshes the slot's expiry; a slot
    left untouched for longer than the TTL reads as absent.

    Operations on a missing slot are no-ops returning None, except
    ``next_entry``, ``mark_resumed``, ``record_success``, ``record_failure``
    and ``increment_processed``, which raise ``SessionError``.
    """

    def __init__(
        self,
        store: StateStore,
        ttl: timedelta = DEFAULT_PROGRESS_TTL,
        key: str = PROGRESS_SLOT_KEY,
    ) -> None:
        """Initialize the progress store.

        Args:
            store: Connected state store.
            ttl: Expiry applied on every write.
            key: Slot key.
        """
        self._store = store
        self._ttl = ttl
        self._key = key
        self._log = logger.bind(component="progress")

    def _apply(self, operation: str, mutation: StateMutation) -> RunState | None:
        """Run a mutation against the live state inside one transaction.

        Returns:
            The state after the mutation, or None if no run exists.
        """
        result: list[RunState] = []

        def updater(payload: str | None) -> str | None:
            if payload is None:
                return None
            state = RunState.model_validate_json(payload)
            changed = mutation(state)
            result.append(state)
            if not changed:
                return None
            state.updated_at = self._store.now()
            return state.model_dump_json()

        self._store.mutate_slot(self._key, updater, self._ttl)
        if not result:
            self._log.debug("progress_slot_missing", operation=operation)
            return None
        return result[0]

    def _apply_required(self, operation: str, mutation: StateMutation) -> RunState:
        state = self._apply(operation, mutation)
        if state is None:
            raise SessionError(operation)
        return state

    def get_state(self) -> RunState | None:
        """Return the live run state, or None if absent or expired."""
        payload = self._store.read_slot(self._key)
        if payload is None:
            return None
        return RunState.model_validate_json(payload)

    def is_active(self) -> bool:
        """Check if a run exists and has not completed or failed."""
        state = self.get_state()
        return state is not None and state.is_active

    def initialize(
        self,
        post_types: Sequence[str],
        total: int,
        options: ExtractionOptions | None = None,
    ) -> bool:
        """Create a fresh run state.

        Does nothing while another run is active; callers clear the slot
        first to take over.

        Args:
            post_types: Content types of the run.
            total: Number of items to process.
            options: Extraction options snapshot of the run.

        Returns:
            True if the state was created.
        """
        created: list[bool] = []

        def updater(payload: str | None) -> str | None:
            if payload is not None and RunState.model_validate_json(payload).is_active:
                return None
            now = self._store.now()
            state = RunState(
                status=RunStatus.INITIALIZING,
                total_count=total,
                current_operation="Initializing export",
                post_types=list(post_types),
                options_snapshot=options,
                started_at=now,
                updated_at=now,
            )
            created.append(True)
            return state.model_dump_json()

        self._store.mutate_slot(self._key, updater, self._ttl)
        if not created:
            self._log.warning("progress_initialize_skipped", reason="run_active")
            return False

        self._log.info("progress_initialized", post_types=list(post_types), total=total)
        return True

    def set_queue(self, entries: Sequence[QueueEntry]) -> RunState | None:
        """Attach the run's queue and move it to processing.

        Args:
            entries: Queue entries in processing order.
        """

        def mutation(state: RunState) -> bool:
            state.status = RunStatusMachine(state.status).transition(
                RunStatus.PROCESSING
            )
            state.queue = list(entries)
            state.cursor = 0
            return True

        state = self._apply("set_queue", mutation)
        if state is not None:
            self._log.info("progress_queue_set", entries=len(state.queue))
        return state

    def next_entry(self) -> QueueEntry | None:
        """Claim the entry at the cursor and advance the cursor.

        The claimed entry becomes the current item with status
        ``processing`` until its outcome is recorded.

        Returns:
            The claimed entry, or None when the queue is exhausted.

        Raises:
            SessionError: If no run exists.
        """
        claimed: list[QueueEntry] = []

        def mutation(state: RunState) -> bool:
            if state.is_exhausted:
                return False
            entry = state.queue[state.cursor]
            state.cursor += 1
            state.current_item = CurrentItem(
                id=entry.item_id, type=entry.type, title=entry.title
            )
            claimed.append(entry)
            return True

        self._apply_required("next_entry", mutation)
        return claimed[0] if claimed else None

    def pending_entry(self) -> QueueEntry | None:
        """Return the claimed entry whose outcome was never recorded.

        A step interrupted between ``next_entry`` and ``record_*`` leaves
        its entry in this state; resuming it keeps the item from being
        skipped.
        """
        state = self.get_state()
        if state is None or state.cursor == 0 or state.current_item is None:
            return None
        if state.current_item.status != "processing":
            return None
        entry = state.queue[state.cursor - 1]
        if entry.item_id != state.current_item.id:
            return None
        return entry

    def mark_resumed(self, entry: QueueEntry) -> int:
        """Count another attempt at a pending entry.

        The count is persisted before the entry is reprocessed, so a step
        that dies while processing still uses up an attempt.

        Args:
            entry: The pending entry being resumed.

        Returns:
            Attempts made at the entry, including this one.

        Raises:
            SessionError: If no run exists.
        """
        attempts: list[int] = []

        def mutation(state: RunState) -> bool:
            current = state.current_item
            if (
                current is None
                or current.id != entry.item_id
                or current.status != "processing"
            ):
                return False
            state.current_item = current.model_copy(
                update={"attempts": current.attempts + 1}
            )
            attempts.append(current.attempts + 1)
            return True

        self._apply_required("mark_resumed", mutation)
        return attempts[0] if attempts else 1

    def _mark_current(
        self,
        state: RunState,
        entry: QueueEntry,
        status: str,
        artifact_url: str | None = None,
        error: str | None = None,
    ) -> None:
        current = state.current_item
        if current is None or current.id != entry.item_id:
            current = CurrentItem(id=entry.item_id, type=entry.type, title=entry.title)
        state.current_item = current.model_copy(
            update={"status": status, "artifact_url": artifact_url, "error": error}
        )

    def _bump_processed(self, state: RunState) -> None:
        state.processed_count = min(state.total_count, state.processed_count + 1)
        state.percentage = compute_percentage(state.processed_count, state.total_count)

    def record_success(self, entry: QueueEntry, artifact_url: str) -> RunState:
        """Record a processed item.

        Args:
            entry: The entry that was processed.
            artifact_url: URL of the item's artifact.

        Raises:
            SessionError: If no run exists.
        """

        def mutation(state: RunState) -> bool:
            self._bump_processed(state)
            self._mark_current(state, entry, "completed", artifact_url=artifact_url)
            if entry.item_id not in state.succeeded_ids:
                state.succeeded_ids.append(entry.item_id)
            return True

        state = self._apply_required("record_success", mutation)
        self._log.info(
            "progress_item_completed",
            item_id=entry.item_id,
            processed=state.processed_count,
            total=state.total_count,
        )
        return state

    def record_failure(
        self, entry: QueueEntry, message: str, count: bool = True
    ) -> RunState:
        """Record a failed item.

        Failed items still count as processed so the run terminates. The
        error and the counter are written together; a step interrupted
        afterwards cannot leave the item recorded but uncounted.

        Args:
            entry: The entry that failed.
            message: Human-readable failure.
            count: Also count the item as processed.

        Raises:
            SessionError: If no run exists.
        """

        def mutation(state: RunState) -> bool:
            if count:
                self._bump_processed(state)
            self._mark_current(state, entry, "failed", error=message)
            state.errors.append(
                ErrorEntry(
                    kind="item_error",
                    message=message,
                    timestamp=self._store.now(),
                    item_id=entry.item_id,
                    item_type=entry.type,
                    item_title=entry.title,
                )
            )
            return True

        state = self._apply_required("record_failure", mutation)
        self._log.warning(
            "progress_item_failed",
            item_id=entry.item_id,
            error=message,
            processed=state.processed_count,
            errors=len(state.errors),
        )
        return state

    def increment_processed(self) -> RunState:
        """Count one more processed item, capped at the total.

        Raises:
            SessionError: If no run exists.
        """

        def mutation(state: RunState) -> bool:
            self._bump_processed(state)
            return True

        return self._apply_required("increment_processed", mutation)

    def complete_section(
        self, item_type: str, name: str, processed: int
    ) -> RunState | None:
        """Record that every entry of a content type has been processed.

        Args:
            item_type: Type key.
            name: Display name of the section.
            processed: Entries of the type processed in this run.
        """

        def mutation(state: RunState) -> bool:
            state.completed_sections.append(
                CompletedSection(
                    type=item_type,
                    name=name,
                    processed=processed,
                    completed_at=self._store.now(),
                )
            )
            state.current_type = None
            return True

        state = self._apply("complete_section", mutation)
        if state is not None:
            self._log.info(
                "progress_section_completed", item_type=item_type, processed=processed
            )
        return state

    def update_operation(
        self, operation: str, item_type: str | None = None
    ) -> RunState | None:
        """Set the human-readable description of the current operation."""

        def mutation(state: RunState) -> bool:
            state.current_operation = operation
            state.current_type = item_type
            return True

        return self._apply("update_operation", mutation)

    def finalize(self, manifest_path: str, size: int) -> RunState | None:
        """Mark the run completed.

        Args:
            manifest_path: Where the manifest was written.
            size: Manifest size in bytes.
        """

        def mutation(state: RunState) -> bool:
            state.status = RunStatusMachine(state.status).transition(
                RunStatus.COMPLETED
            )
            state.percentage = 100
            state.current_operation = "Export completed"
            state.current_item = None
            state.file_path = manifest_path
            state.file_size = size
            state.completed_at = self._store.now()
            return True

        state = self._apply("finalize", mutation)
        if state is not None:
            self._log.info("progress_finalized", path=manifest_path, size=size)
        return state

    def abort(self, message: str) -> RunState | None:
        """Mark the run failed.

        A run that already completed or failed is left as it is.

        Args:
            message: Why the run was aborted.
        """
        skipped: list[RunStatus] = []

        def mutation(state: RunState) -> bool:
            if not state.is_active:
                skipped.append(state.status)
                return False
            state.status = RunStatusMachine(state.status).transition(RunStatus.ERROR)
            state.current_operation = "Export failed"
            state.current_item = None
            state.errors.append(
                ErrorEntry(
                    kind="generation_error",
                    message=message,
                    timestamp=self._store.now(),
                )
            )
            state.failed_at = self._store.now()
            return True

        state = self._apply("abort", mutation)
        if skipped:
            self._log.warning(
                "progress_abort_skipped", status=skipped[0].value, error=message
            )
            return None
        if state is not None:
            self._log.error("progress_aborted", error=message)
        return state

    def clear(self) -> None:
        """Delete the slot, freeing it for a new run."""
        deleted = self._store.delete_slot(self._key)
        self._log.info("progress_cleared", existed=deleted)

    def estimate_remaining_seconds(self) -> float | None:
        """Estimate the time left from the average pace so far.

        Returns:
            Seconds remaining, or None before the first processed item.
        """
        state = self.get_state()
        if state is None or state.processed_count == 0:
            return None

        elapsed = (self._store.now() - state.started_at).total_seconds()
        per_second = state.processed_count / max(1.0, elapsed)
        remaining = state.total_count - state.processed_count
        return remaining / max(0.1, per_second)


def format_estimate(seconds: float | None) -> str:
    """Render a remaining-time estimate for humans.

    Examples:
        >>> format_estimate(42.2)
        '43 seconds'
        >>> format_estimate(None)
        'Calculating...'
    """
    if seconds is None:
        return "Calculating..."
    if seconds < SECONDS_PER_MINUTE:
        return f"{math.ceil(seconds)} seconds"
    if seconds < SECONDS_PER_HOUR:
        return f"{math.ceil(seconds / SECONDS_PER_MINUTE)} minutes"
    return f"{math.ceil(seconds / SECONDS_PER_HOUR)} hours"

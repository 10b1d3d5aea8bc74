"""Run controller: drives an export run one polling step at a time."""

from collections.abc import Sequence
from pathlib import Path

import structlog

from llms_export.content.models import ExtractionOptions
from llms_export.content.source import ContentSource
from llms_export.controller.models import ItemCounts, LastItem, StepResponse
from llms_export.errors import (
    ExportError,
    GenerationError,
    NoItemsConfiguredError,
    SessionError,
)
from llms_export.manifest.builder import ManifestBuilder, render_manifest
from llms_export.manifest.io import AtomicWriter
from llms_export.manifest.models import GenerationStatus
from llms_export.processor.models import ProcessError, ProcessErrorClass, ProcessResult
from llms_export.processor.processor import ItemProcessor
from llms_export.progress.models import QueueEntry, RunState
from llms_export.progress.store import ProgressStore
from llms_export.settings.export import ExportSettings
from llms_export.store.models import ManifestRecord
from llms_export.store.store import StateStore


logger = structlog.get_logger()

DEFAULT_MAX_STEPS = 100_000
DEFAULT_MAX_ITEM_ATTEMPTS = 3


class RunController:
    """Drives an export run through repeated ``step`` calls.

    Each call performs exactly one unit of work: one queue entry, or the
    final manifest assembly. A caller may stop polling at any point; the
    next call picks up from the persisted progress.

    State flow:
        Idle -> Initializing -> Processing -> Completed | Error
    """

    def __init__(  # noqa: PLR0913
        self,
        source: ContentSource,
        processor: ItemProcessor,
        progress: ProgressStore,
        store: StateStore,
        export: ExportSettings,
        site_title: str,
        manifest_path: Path,
        site_description: str = "",
        max_item_failures: int | None = None,
        max_item_attempts: int = DEFAULT_MAX_ITEM_ATTEMPTS,
        writer: AtomicWriter | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            source: Content source.
            processor: Per-item processor.
            progress: Progress store of the single run slot.
            store: Connected state store.
            export: Export settings used when a run starts.
            site_title: Manifest title.
            manifest_path: Where the manifest is written.
            site_description: Optional manifest description.
            max_item_failures: Abort the run once this many items failed.
            max_item_attempts: Steps that may start on one item before it is
                recorded as failed without another try.
            writer: Atomic file writer.
        """
        self._source = source
        self._processor = processor
        self._progress = progress
        self._store = store
        self._export = export
        self._site_title = site_title
        self._site_description = site_description
        self._manifest_path = manifest_path
        self._max_item_failures = max_item_failures
        self._max_item_attempts = max_item_attempts
        self._writer = writer or AtomicWriter()
        self._log = logger.bind(component="controller")

    @property
    def progress(self) -> ProgressStore:
        """Get the progress store."""
        return self._progress

    def step(self, start: bool = False) -> StepResponse:
        """Perform one unit of work.

        Args:
            start: Begin a fresh run, discarding any existing one.

        Returns:
            Polling response with counts and the item handled.

        Raises:
            NoItemsConfiguredError: If started with no content types.
            GenerationError: If the run had to be aborted.
            SessionError: If the run vanished mid-step.
        """
        if start:
            self._start()
        else:
            state = self._progress.get_state()
            if state is None:
                return StepResponse.idle()
            if not state.is_active:
                return StepResponse.idle(state.processed_count, state.total_count)

        try:
            return self._advance()
        except ExportError:
            raise
        except Exception as e:
            message = f"Unexpected error during step: {e}"
            self._log.exception("step_failed", error=str(e))
            self._progress.abort(message)
            raise GenerationError(message, cause=e) from e

    def run(self, max_steps: int = DEFAULT_MAX_STEPS) -> StepResponse:
        """Start a run and step until it finishes.

        Args:
            max_steps: Safety bound on the number of steps.

        Returns:
            The final polling response.
        """
        response = self.step(start=True)
        steps = 1
        while not response.finished and steps < max_steps:
            response = self.step()
            steps += 1
        return response

    def _start(self) -> None:
        """Replace any existing run with a fresh one."""
        post_types = list(self._export.post_types)
        if not post_types:
            self._log.error("run_start_rejected", reason="no_post_types")
            raise NoItemsConfiguredError()

        if self._progress.get_state() is not None:
            self._log.info("previous_run_discarded")
        self._progress.clear()

        options = self._export.extraction_options()
        self._log.info(
            "run_started",
            post_types=post_types,
            max_posts_per_type=self._export.max_posts_per_type,
        )

        try:
            entries = self._build_queue(post_types, options)
        except Exception as e:
            message = f"Failed to build queue: {e}"
            self._log.exception("queue_build_failed", error=str(e))
            self._progress.initialize(post_types, 0, options)
            self._progress.abort(message)
            raise GenerationError(message, cause=e) from e

        if not self._progress.initialize(post_types, len(entries), options):
            msg = "Another export run took over the progress slot"
            raise ExportError(msg)
        self._progress.set_queue(entries)
        self._progress.update_operation("Processing queue")

    def _build_queue(
        self, post_types: Sequence[str], options: ExtractionOptions
    ) -> list[QueueEntry]:
        entries: list[QueueEntry] = []
        for item_type in post_types:
            items = self._source.enumerate(item_type, self._export.max_posts_per_type)
            entries.extend(
                QueueEntry(
                    item_id=item.id,
                    type=item.type,
                    title=item.title,
                    options_snapshot=options,
                )
                for item in items
            )
            self._log.debug("queue_type_built", item_type=item_type, items=len(items))
        self._log.info("queue_built", entries=len(entries))
        return entries

    def _advance(self) -> StepResponse:
        attempts = 1
        entry = self._progress.pending_entry()
        if entry is not None:
            attempts = self._progress.mark_resumed(entry)
            self._log.info(
                "pending_entry_resumed", item_id=entry.item_id, attempts=attempts
            )
        else:
            entry = self._progress.next_entry()

        if entry is None:
            state = self.finalize_manifest()
            return StepResponse(
                finished=True,
                items=ItemCounts(parsed=state.processed_count, total=state.total_count),
            )

        if attempts > self._max_item_attempts:
            state = self._abandon_entry(entry, attempts - 1)
        else:
            state = self._process_entry(entry)

        self._complete_section_if_done(state, entry)
        self._check_failure_threshold(state)
        return StepResponse(
            finished=False,
            items=ItemCounts(parsed=state.processed_count, total=state.total_count),
            last=LastItem(type=entry.type, id=entry.item_id, title=entry.title),
        )

    def _abandon_entry(self, entry: QueueEntry, attempts: int) -> RunState:
        """Fail an entry whose processing never finished."""
        self._log.warning(
            "pending_entry_abandoned", item_id=entry.item_id, attempts=attempts
        )
        return self._progress.record_failure(
            entry, f"Abandoned after {attempts} interrupted attempts"
        )

    def _process_entry(self, entry: QueueEntry) -> RunState:
        self._progress.update_operation(
            f"Processing {self._source.section_label(entry.type)}", entry.type
        )

        item = self._source.get_item(entry.type, entry.item_id)
        if item is None or not item.is_published:
            result = ProcessResult(
                item_id=entry.item_id,
                error=ProcessError(
                    error_class=ProcessErrorClass.ITEM_NOT_FOUND,
                    message=f"{entry.type} {entry.item_id} is no longer available",
                ),
            )
        else:
            result = self._processor.process(item, entry.options_snapshot)

        if result.is_success and result.artifact_url is not None:
            state = self._progress.record_success(entry, result.artifact_url)
        else:
            error = result.error
            message = (
                f"{error.error_class.value}: {error.message}"
                if error is not None
                else "Item produced no artifact"
            )
            state = self._progress.record_failure(entry, message)
        return state

    def _complete_section_if_done(self, state: RunState, entry: QueueEntry) -> None:
        """Record the type's section when this entry was its last."""
        if not state.is_exhausted and state.queue[state.cursor].type == entry.type:
            return
        processed = sum(1 for queued in state.queue if queued.type == entry.type)
        self._progress.complete_section(
            entry.type, self._source.section_label(entry.type), processed
        )

    def _check_failure_threshold(self, state: RunState) -> None:
        if self._max_item_failures is None:
            return
        failures = len(state.item_errors)
        if failures < self._max_item_failures:
            return
        message = f"Aborted after {failures} failed items"
        self._progress.abort(message)
        raise GenerationError(message)

    def finalize_manifest(self) -> RunState:
        """Assemble and write the manifest, then release the run slot.

        Only items that succeeded in this run are linked, using their
        stored artifact URLs; nothing is uploaded here.

        Returns:
            The completed run state, as it was before the slot was cleared.

        Raises:
            SessionError: If no run exists.
        """
        state = self._progress.get_state()
        if state is None:
            raise SessionError("finalize_manifest")
        self._progress.update_operation("Writing manifest")

        records = self._store.get_artifact_records(state.succeeded_ids)
        succeeded = set(state.succeeded_ids)
        builder = ManifestBuilder(self._site_title, self._site_description)
        for entry in state.queue:
            record = records.get(entry.item_id)
            if entry.item_id not in succeeded or record is None:
                continue
            builder.add_link(
                self._source.section_label(entry.type),
                entry.title,
                record.artifact_url,
            )

        manifest = builder.build(self._store.now())
        generated = self._writer.write(self._manifest_path, render_manifest(manifest))
        self._store.record_manifest(
            ManifestRecord(
                generated_at=manifest.generated_at,
                path=generated.path,
                size=generated.bytes_written,
                items=manifest.item_count,
            )
        )

        final_state = self._progress.finalize(generated.path, generated.bytes_written)
        if final_state is None:
            raise SessionError("finalize")
        self._progress.clear()

        self._log.info(
            "run_completed",
            path=generated.path,
            bytes=generated.bytes_written,
            items=manifest.item_count,
            processed=final_state.processed_count,
            total=final_state.total_count,
            errors=len(final_state.item_errors),
        )
        return final_state

    def refresh_item(self, item_type: str, item_id: int) -> ProcessResult | None:
        """Re-process one item outside of a run so its artifact stays current.

        Uploads only when the item's content changed since its last upload.

        Returns:
            The processing result, or None when the refresh was skipped.
        """
        log = self._log.bind(item_type=item_type, item_id=item_id)

        if not self._export.auto_update:
            log.debug("refresh_skipped", reason="auto_update_disabled")
            return None
        if item_type not in self._export.post_types:
            log.debug("refresh_skipped", reason="type_not_exported")
            return None
        if self._progress.is_active():
            log.info("refresh_skipped", reason="run_active")
            return None

        item = self._source.get_item(item_type, item_id)
        if item is None or not item.is_published or not self._source.should_include(item):
            log.debug("refresh_skipped", reason="not_exportable")
            return None

        result = self._processor.process(item, self._export.extraction_options())
        log.info("item_refreshed", reused=result.reused, success=result.is_success)
        return result

    def reset(self) -> int:
        """Discard the current run and every stored artifact record.

        Returns:
            Number of artifact records deleted.
        """
        self._progress.clear()
        deleted = self._store.delete_all_artifact_records()
        self._log.info("export_reset", records_deleted=deleted)
        return deleted

    def get_generation_status(self) -> GenerationStatus:
        """Summarize the last manifest generation."""
        last = self._store.get_last_manifest()
        return GenerationStatus(
            last_generated=last.generated_at if last else None,
            file_exists=self._manifest_path.exists(),
            file_size=last.size if last else 0,
            items=last.items if last else 0,
            path=str(self._manifest_path),
        )

    def delete_manifest(self) -> bool:
        """Delete the manifest file and its generation history.

        Returns:
            True if a manifest file was removed.
        """
        removed = self._writer.delete(self._manifest_path)
        self._store.clear_manifest_history()
        self._log.info("manifest_deleted", removed=removed)
        return removed

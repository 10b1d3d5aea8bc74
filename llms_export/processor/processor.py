"""Per-item pipeline: extract, hash, upload or reuse, record."""

import re
import unicodedata
from typing import Protocol

import structlog

from llms_export.artifacts.models import UploadResult
from llms_export.content.models import ExtractionOptions, Item
from llms_export.content.source import ContentSource
from llms_export.processor.metrics import ProcessorMetrics
from llms_export.processor.models import (
    ExtractedContent,
    ProcessError,
    ProcessErrorClass,
    ProcessResult,
)
from llms_export.store.hash import compute_content_hash
from llms_export.store.models import ItemArtifactRecord
from llms_export.store.store import StateStore


logger = structlog.get_logger()

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class Uploader(Protocol):
    """Anything that can upload one text file."""

    def upload(
        self, content: str, filename: str, tenant_id: str | None = None
    ) -> UploadResult: ...


def slugify(text: str) -> str:
    """Reduce text to a lowercase ASCII slug.

    Examples:
        >>> slugify("Héllo, World!")
        'hello-world'
    """
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", ascii_text.lower()).strip("-")


def build_filename(item: Item) -> str:
    """Return the artifact filename ``{type}_{id}_{slug}.md`` of an item.

    The item's own slug wins; otherwise one is derived from the title.
    """
    slug = item.slug or slugify(item.title)
    return f"{item.type}_{item.id}_{slug}.md"


class ItemProcessor:
    """Turns one item into an artifact URL.

    Identical content is never uploaded twice: when the stored record of
    the item carries the same content hash, its URL is reused without any
    network call. Failed uploads leave the stored record untouched.
    """

    def __init__(
        self,
        source: ContentSource,
        uploader: Uploader,
        store: StateStore,
    ) -> None:
        """Initialize the processor.

        Args:
            source: Content source used for extraction.
            uploader: Artifact uploader.
            store: Connected state store holding artifact records.
        """
        self._source = source
        self._uploader = uploader
        self._store = store
        self._metrics = ProcessorMetrics.get_instance()
        self._log = logger.bind(component="processor")

    def extract(self, item: Item, options: ExtractionOptions) -> ExtractedContent | None:
        """Extract and hash an item's text.

        Returns:
            The extracted content, or None when the item has no text.
        """
        text = self._source.extract(item, options)
        if not text:
            return None
        return ExtractedContent(
            text=text,
            content_hash=compute_content_hash(text),
            size=len(text.encode("utf-8")),
        )

    def process(self, item: Item, options: ExtractionOptions) -> ProcessResult:
        """Process one item.

        Args:
            item: Live item to export.
            options: Extraction options of the run.

        Returns:
            ProcessResult with the artifact URL or a typed error.
        """
        log = self._log.bind(item_id=item.id, item_type=item.type)

        extracted = self.extract(item, options)
        if extracted is None:
            return self._failed(
                log,
                item,
                ProcessErrorClass.EMPTY_CONTENT,
                f"No content extracted for {item.type} {item.id}",
            )

        record = self._store.get_artifact_record(item.id)
        if record is not None and record.content_hash == extracted.content_hash:
            self._metrics.record_reused()
            log.info("artifact_reused", url=record.artifact_url, size=extracted.size)
            return ProcessResult(
                item_id=item.id,
                artifact_url=record.artifact_url,
                size=extracted.size,
                reused=True,
            )

        upload = self._uploader.upload(extracted.text, build_filename(item))
        if upload.error is not None or upload.url is None:
            error_class = (
                ProcessErrorClass(upload.error.error_class.value)
                if upload.error is not None
                else ProcessErrorClass.MISSING_URL
            )
            message = (
                upload.error.message
                if upload.error is not None
                else "Upload returned no URL"
            )
            return self._failed(log, item, error_class, message)

        self._store.upsert_artifact_record(
            ItemArtifactRecord(
                item_id=item.id,
                content_hash=extracted.content_hash,
                artifact_url=upload.url,
                uploaded_at=self._store.now(),
                size=extracted.size,
            )
        )
        self._metrics.record_uploaded()
        log.info(
            "item_processed",
            url=upload.url,
            size=extracted.size,
            replaced=record is not None,
        )
        return ProcessResult(
            item_id=item.id,
            artifact_url=upload.url,
            size=extracted.size,
        )

    def _failed(
        self,
        log: structlog.stdlib.BoundLogger,
        item: Item,
        error_class: ProcessErrorClass,
        message: str,
    ) -> ProcessResult:
        self._metrics.record_failed(error_class)
        log.warning("item_failed", error_class=error_class.value, message=message)
        return ProcessResult(
            item_id=item.id,
            error=ProcessError(error_class=error_class, message=message),
        )

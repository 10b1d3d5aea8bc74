"""Wiring of a run controller from settings."""

from datetime import timedelta

import httpx

from llms_export.artifacts.client import ArtifactClient
from llms_export.content.source import ContentSource, StaticContentSource
from llms_export.controller.controller import RunController
from llms_export.manifest.io import AtomicWriter
from llms_export.processor.processor import ItemProcessor, Uploader
from llms_export.progress.store import ProgressStore
from llms_export.settings.app import AppSettings
from llms_export.settings.export import ExportSettings, load_export_settings
from llms_export.store.store import StateStore


def build_source(settings: AppSettings) -> StaticContentSource:
    """Load the content source named by the settings."""
    return StaticContentSource.from_file(settings.content_path)


def build_uploader(
    settings: AppSettings,
    transport: httpx.BaseTransport | None = None,
) -> ArtifactClient:
    """Create the artifact client named by the settings."""
    return ArtifactClient(
        endpoint=settings.artifact_endpoint,
        tenant_id=settings.resolved_tenant_id(),
        token=settings.artifact_token,
        timeout=settings.upload_timeout_seconds,
        transport=transport,
    )


def build_controller(
    settings: AppSettings,
    store: StateStore,
    source: ContentSource | None = None,
    uploader: Uploader | None = None,
    export: ExportSettings | None = None,
    writer: AtomicWriter | None = None,
) -> RunController:
    """Assemble a run controller.

    Args:
        settings: Application settings.
        store: Connected state store.
        source: Content source; loaded from ``settings.content_path`` if None.
        uploader: Artifact uploader; an ArtifactClient if None.
        export: Export settings; loaded from ``settings.export_config_path``
            if None.
        writer: Manifest file writer.

    Returns:
        Ready-to-step controller.
    """
    content = source if source is not None else build_source(settings)
    options = (
        export if export is not None else load_export_settings(settings.export_config_path)
    )
    progress = ProgressStore(
        store, ttl=timedelta(seconds=settings.progress_ttl_seconds)
    )
    processor = ItemProcessor(
        content,
        uploader if uploader is not None else build_uploader(settings),
        store,
    )
    return RunController(
        source=content,
        processor=processor,
        progress=progress,
        store=store,
        export=options,
        site_title=settings.site_title,
        site_description=settings.site_description,
        manifest_path=settings.manifest_path,
        max_item_failures=settings.max_item_failures,
        max_item_attempts=settings.max_item_attempts,
        writer=writer,
    )

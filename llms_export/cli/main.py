"""CLI commands for the llms.txt exporter."""

import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import click
import structlog

from llms_export import __version__
from llms_export.artifacts.metrics import UploadMetrics
from llms_export.content.errors import ContentSourceError
from llms_export.content.source import StaticContentSource
from llms_export.controller.controller import RunController
from llms_export.controller.factory import (
    build_controller,
    build_source,
    build_uploader,
)
from llms_export.errors import ExportError
from llms_export.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from llms_export.processor.metrics import ProcessorMetrics
from llms_export.progress.store import format_estimate
from llms_export.settings.app import AppSettings, get_settings
from llms_export.store.errors import StateStoreError
from llms_export.store.metrics import StoreMetrics
from llms_export.store.store import StateStore


logger = structlog.get_logger()


def _echo_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@contextmanager
def _open_controller(
    settings: AppSettings, with_content: bool = True
) -> Iterator[RunController]:
    """Open the state store and build a controller over it.

    Commands that never touch content pass ``with_content=False`` so they
    work without a content export file.
    """
    source = build_source(settings) if with_content else StaticContentSource([])
    with StateStore(db_path=settings.state_path) as store:
        yield build_controller(settings, store, source=source)


@click.group()
@click.pass_context
@click.version_option(version=__version__)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def cli(ctx: click.Context, json_logs: bool, verbose: bool) -> None:
    """Export site content to artifacts and an llms.txt manifest."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        json_format=json_logs,
    )
    bind_run_context(str(uuid.uuid4()), command=ctx.invoked_subcommand)
    ctx.call_on_close(clear_run_context)


@cli.command()
@click.option("--start", is_flag=True, help="Discard any run and start a new one.")
def step(start: bool) -> None:
    """Perform one unit of work and print the polling response."""
    settings = get_settings()
    try:
        with _open_controller(settings) as controller:
            response = controller.step(start=start)
    except (ExportError, ContentSourceError, StateStoreError) as e:
        logger.error("step_command_failed", component="cli", error=str(e))
        _fail(str(e))
        return
    _echo_json(response.to_dict())


@cli.command()
def run() -> None:
    """Start a run and step until the manifest is written."""
    settings = get_settings()
    try:
        with _open_controller(settings) as controller:
            response = controller.step(start=True)
            click.echo(
                f"Started: {response.items.total} items queued", err=True
            )
            while not response.finished:
                response = controller.step()
                if response.last is not None:
                    click.echo(
                        f"[{response.items.parsed}/{response.items.total}] "
                        f"{response.last.type} {response.last.id}: {response.last.title}",
                        err=True,
                    )
            status = controller.get_generation_status()
    except (ExportError, ContentSourceError, StateStoreError) as e:
        logger.error("run_command_failed", component="cli", error=str(e))
        _fail(str(e))
        return

    click.echo(
        f"Export complete. {status.items} items written to {status.path} "
        f"({status.file_size} bytes)"
    )


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def status(json_output: bool) -> None:
    """Show the in-flight run and the last generated manifest."""
    settings = get_settings()
    with _open_controller(settings, with_content=False) as controller:
        state = controller.progress.get_state()
        estimate = controller.progress.estimate_remaining_seconds()
        generation = controller.get_generation_status()

    if json_output:
        _echo_json(
            {
                "run": state.model_dump(mode="json", exclude={"queue"})
                if state
                else None,
                "remaining": format_estimate(estimate) if state else None,
                "generation": generation.to_dict(),
            }
        )
        return

    click.echo("Export Run")
    click.echo("=" * 40)
    if state is None:
        click.echo("  No run in progress")
    else:
        click.echo(f"  Status: {state.status.value}")
        click.echo(f"  Operation: {state.current_operation}")
        click.echo(
            f"  Progress: {state.processed_count}/{state.total_count} "
            f"({state.percentage}%)"
        )
        click.echo(f"  Errors: {len(state.errors)}")
        click.echo(f"  Remaining: {format_estimate(estimate)}")
    click.echo("")
    click.echo("Last Manifest")
    click.echo("=" * 40)
    info = generation.to_dict()
    click.echo(f"  Generated: {info['last_generated_hr']}")
    click.echo(f"  Path: {info['path']}")
    click.echo(f"  Exists: {info['file_exists']}")
    click.echo(f"  Size: {info['file_size']} bytes")
    click.echo(f"  Items: {info['items']}")


@cli.command()
@click.confirmation_option(prompt="Discard the run and all artifact records?")
def reset() -> None:
    """Clear the current run and every stored artifact record."""
    settings = get_settings()
    with _open_controller(settings, with_content=False) as controller:
        deleted = controller.reset()
    click.echo(f"Reset complete. Deleted {deleted} artifact records.")


@cli.command("delete-manifest")
def delete_manifest() -> None:
    """Delete the manifest file and its generation history."""
    settings = get_settings()
    with _open_controller(settings, with_content=False) as controller:
        removed = controller.delete_manifest()
    if removed:
        click.echo(f"Deleted {settings.manifest_path}")
    else:
        click.echo(f"No manifest at {settings.manifest_path}")


@cli.command("test-connection")
def test_connection() -> None:
    """Upload a probe file to check the artifact endpoint."""
    settings = get_settings()
    result = build_uploader(settings).test_connection()
    if result.error is not None:
        _fail(f"{result.error.error_class.value}: {result.error.message}")
        return
    click.echo(f"Connection OK: {result.url}")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def stats(json_output: bool) -> None:
    """Display content counts per type and state database statistics."""
    settings = get_settings()
    try:
        content = build_source(settings).content_stats()
        with StateStore(db_path=settings.state_path) as store:
            schema_version = store.get_schema_version()
            tables = store.get_stats()
    except (ContentSourceError, StateStoreError) as e:
        _fail(str(e))
        return

    if json_output:
        _echo_json(
            {
                "content": content,
                "schema_version": schema_version,
                "tables": tables,
                "metrics": {
                    "store": StoreMetrics.get_instance().to_dict(),
                    "uploads": UploadMetrics.get_instance().to_dict(),
                    "processor": ProcessorMetrics.get_instance().to_dict(),
                },
            }
        )
        return

    click.echo("Content")
    click.echo("=" * 40)
    for item_type, counts in sorted(content.items()):
        click.echo(
            f"  {counts['name']} ({item_type}): "
            f"{counts['published_count']} published / {counts['total_count']} total"
        )
    click.echo("")
    click.echo("State Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {schema_version}")
    for table, count in sorted(tables.items()):
        click.echo(f"  {table}: {count}")

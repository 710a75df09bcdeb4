"""Offline queue management CLI commands."""

import asyncio
import base64
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import typer

from cropdoc.config import Settings, get_settings
from cropdoc.errors import StorageUnavailableError
from cropdoc.logging import setup_logging
from cropdoc.sync import (
    HttpRemoteProcessor,
    MediaKind,
    OfflineQueueService,
    PendingMediaRecord,
    RemoteProcessor,
    SimulatedRemoteProcessor,
    SqliteKeyValueStore,
)

T = TypeVar("T")

queue_app = typer.Typer(
    name="queue",
    help="Offline media queue - list, sync, delete and clear pending captures.",
    no_args_is_help=True,
)


def build_service(settings: Settings) -> OfflineQueueService:
    """Create the queue service described by settings."""
    if settings.simulate_remote:
        processor: RemoteProcessor = SimulatedRemoteProcessor(delay=settings.simulate_delay)
    else:
        processor = HttpRemoteProcessor(
            server_url=settings.server_url,
            max_retries=settings.upload_max_retries,
            timeout=settings.upload_request_timeout,
        )
    return OfflineQueueService(
        SqliteKeyValueStore(settings.queue_db_path),
        processor,
        storage_key=settings.storage_key,
        item_timeout=settings.sync_item_timeout,
    )


def _run(action: Callable[[OfflineQueueService], Awaitable[T]]) -> T:
    """Run one queue action against a freshly opened service."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    service = build_service(settings)

    async def _main() -> T:
        try:
            return await action(service)
        finally:
            await service.close()
            await service.processor.close()

    try:
        return asyncio.run(_main())
    except StorageUnavailableError as e:
        typer.echo(f"Queue storage unavailable: {e}", err=True)
        raise typer.Exit(1)


def _format_created(created_at: int) -> str:
    return datetime.fromtimestamp(created_at / 1000, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )


@queue_app.command("list")
def list_command(
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """List queued captures, newest first."""
    records = _run(lambda service: service.list_all())

    if output_json:
        # Inline payloads can be megabytes; report only their presence
        rows = []
        for record in records:
            row = record.to_dict()
            row["base64Content"] = record.inline_content is not None
            rows.append(row)
        typer.echo(json.dumps(rows))
        return

    if not records:
        typer.echo("No pending captures yet")
        return

    for record in records:
        state = "synced" if record.is_synced else "pending"
        source = record.content_source or "missing"
        typer.echo(
            f"{record.id}  {record.media_kind.value:<5}  {state:<7}  "
            f"{_format_created(record.created_at)}  ({source})"
        )


@queue_app.command("status")
def status_command(
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Show queue counts."""
    stats = _run(lambda service: service.stats())

    if output_json:
        typer.echo(json.dumps(stats))
        return

    typer.echo("")
    typer.echo("Offline Queue Status")
    typer.echo("--------------------")
    typer.echo(f"Queue: {stats['unsynced']} pending, {stats['synced']} synced")
    typer.echo(f"Total: {stats['total']}")
    typer.echo("")


@queue_app.command("add")
def add_command(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Media file to queue"),
    kind: MediaKind = typer.Option(MediaKind.IMAGE, "--kind", "-k", help="Media kind"),
    voice_note: str = typer.Option(None, "--voice-note", help="Transcribed voice note"),
    duration: int = typer.Option(0, "--duration", min=0, help="Video length in seconds"),
    inline: bool = typer.Option(
        False, "--inline", help="Store the file content in the queue instead of its path"
    ),
) -> None:
    """Save a capture for later analysis."""
    if inline:
        record = PendingMediaRecord.create(
            kind,
            inline_content=base64.b64encode(path.read_bytes()).decode("ascii"),
            voice_note=voice_note,
            duration_seconds=duration,
        )
    else:
        record = PendingMediaRecord.create(
            kind,
            str(path.resolve()),
            voice_note=voice_note,
            duration_seconds=duration,
        )

    _run(lambda service: service.enqueue(record))
    typer.echo(f"Queued {record.id}")


@queue_app.command("sync")
def sync_command() -> None:
    """Send all unsynced captures for analysis."""
    outcome = _run(lambda service: service.sync_all())
    typer.echo(outcome.message)
    if outcome.failed:
        raise typer.Exit(1)


@queue_app.command("delete")
def delete_command(record_id: str = typer.Argument(..., help="Record id")) -> None:
    """Remove one capture from the queue."""
    _run(lambda service: service.delete(record_id))
    typer.echo(f"Deleted {record_id}")


@queue_app.command("clear")
def clear_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove every capture from the queue."""
    if not yes:
        typer.confirm("Remove all queued captures?", abort=True)
    _run(lambda service: service.clear())
    typer.echo("Queue cleared")

"""
``flask importer`` commands for running volunteer uploads from the shell.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from flask import current_app
from flask.cli import AppGroup

from seva_app.importer.celery_app import DEFAULT_QUEUE_NAME, get_celery_app
from seva_app.importer.contracts import get_volunteer_upload_schema
from seva_app.importer.pipeline import run_volunteer_upload

importer_cli = AppGroup("importer", help="Volunteer spreadsheet upload commands.")


def get_disabled_importer_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="importer", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Importer commands are unavailable because IMPORTER_ENABLED=false.")

    return disabled_group


@importer_cli.command("upload")
@click.argument("file_path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Read, validate and de-duplicate without inserting.")
@click.option("--batch-size", type=click.IntRange(min=1), help="Override IMPORTER_BATCH_SIZE for this run.")
@click.pass_context
def importer_upload(ctx, file_path: Path, dry_run: bool, batch_size: Optional[int]):
    """Upload a volunteer spreadsheet (.xlsx, .xlsm or .csv) inline."""
    outcome = run_volunteer_upload(
        file_path.read_bytes(),
        file_path.name,
        dry_run=dry_run,
        batch_size=batch_size,
    )
    click.echo(json.dumps(outcome.as_dict(), indent=2, ensure_ascii=False))
    if outcome.rejected:
        ctx.exit(1)


@importer_cli.command("schema")
def importer_schema():
    """List the accepted column headers for every volunteer field."""
    schema = get_volunteer_upload_schema(
        age_bounds=(
            int(current_app.config.get("IMPORTER_AGE_MIN", 18)),
            int(current_app.config.get("IMPORTER_AGE_MAX", 100)),
        )
    )
    for spec in schema.fields:
        flags = [spec.type.value]
        if spec.required:
            flags.append("required")
        if spec.digits is not None:
            flags.append(f"{spec.digits.length} digits")
        if spec.bounds is not None:
            flags.append(f"{spec.bounds[0]}-{spec.bounds[1]}")
        click.echo(f"{spec.key} ({', '.join(flags)})")
        click.echo(f"    {' | '.join(spec.headers())}")


@importer_cli.command("worker")
@click.option("--loglevel", default="info", show_default=True)
@click.option("--concurrency", type=int, help="Number of worker processes/threads.")
@click.option("--pool", type=str, help="Celery pool implementation (e.g., 'prefork', 'solo', 'threads').")
def importer_worker(loglevel: str, concurrency: Optional[int], pool: Optional[str]):
    """Start the Celery worker that processes queued uploads."""
    celery_app = get_celery_app(current_app)
    if celery_app is None:
        raise click.ClickException("Importer Celery app is unavailable. Ensure IMPORTER_ENABLED=true.")
    if not current_app.config.get("IMPORTER_WORKER_ENABLED"):
        click.echo(
            "Warning: IMPORTER_WORKER_ENABLED is false; uploads will run inline and never reach this worker.",
            err=True,
        )

    argv = ["worker", "--loglevel", loglevel, "-Q", DEFAULT_QUEUE_NAME]
    if concurrency:
        argv.extend(["--concurrency", str(concurrency)])
    if pool:
        argv.extend(["--pool", pool])

    click.echo(f"Starting importer worker (queue: {DEFAULT_QUEUE_NAME}, loglevel: {loglevel})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")

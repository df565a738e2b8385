"""
Volunteer spreadsheet importer.

Mounts the upload blueprint and ``flask importer`` CLI when
``IMPORTER_ENABLED`` is set, and prepares the Celery app used for
background uploads.
"""

from __future__ import annotations

from typing import Any

from flask import Flask

from seva_app.utils.importer import is_importer_enabled, is_worker_enabled

from .celery_app import ensure_celery_app, get_celery_app
from .cli import get_disabled_importer_group, importer_cli
from .pipeline import UploadCancellation, UploadOutcome, VolunteerUploadPipeline, run_volunteer_upload
from .views import importer_blueprint

IMPORTER_EXTENSION_KEY = "importer"

__all__ = [
    "IMPORTER_EXTENSION_KEY",
    "UploadCancellation",
    "UploadOutcome",
    "VolunteerUploadPipeline",
    "get_celery_app",
    "init_importer",
    "run_volunteer_upload",
]


def _ensure_extension_state(app: Flask) -> dict[str, Any]:
    return app.extensions.setdefault(
        IMPORTER_EXTENSION_KEY,
        {"enabled": False, "worker_enabled": False, "celery_app": None},
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    if importer_cli.name in app.cli.commands:
        app.cli.commands.pop(importer_cli.name)

    if enabled:
        app.cli.add_command(importer_cli)
    else:
        app.cli.add_command(get_disabled_importer_group())


def init_importer(app: Flask) -> None:
    """
    Conditionally mount the importer blueprint and CLI.

    State is recorded in ``app.extensions['importer']`` for the views and CLI.
    """
    enabled = is_importer_enabled(app)
    state = _ensure_extension_state(app)
    state.update({"enabled": enabled, "worker_enabled": is_worker_enabled(app)})

    if not enabled:
        _set_cli(app, enabled=False)
        app.logger.info("Importer disabled via IMPORTER_ENABLED flag; skipping registration.")
        return

    if state["worker_enabled"]:
        ensure_celery_app(app, state)

    if importer_blueprint.name not in app.blueprints:
        app.register_blueprint(importer_blueprint)
    _set_cli(app, enabled=True)
    app.logger.info("Importer enabled (worker_enabled=%s)", state["worker_enabled"])

"""
Feature flags for the volunteer upload surfaces.
"""

from __future__ import annotations

from flask import current_app


def _flag(name: str, app=None) -> bool:
    config = app.config if app is not None else current_app.config
    return bool(config.get(name, False))


def is_importer_enabled(app=None) -> bool:
    """Upload blueprint and ``flask importer`` commands are mounted."""
    return _flag("IMPORTER_ENABLED", app)


def is_worker_enabled(app=None) -> bool:
    """Uploads are queued to Celery instead of running in the request."""
    return _flag("IMPORTER_WORKER_ENABLED", app)

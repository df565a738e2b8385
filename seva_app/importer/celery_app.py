"""
Celery wiring for background volunteer uploads.

Broker and result backend fall back to a SQLite file in the Flask instance
folder, so a developer can run ``flask importer worker`` without Redis.
Production deployments set ``CELERY_BROKER_URL`` and
``CELERY_RESULT_BACKEND``; ``CELERY_CONFIG`` (JSON) is merged last.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from celery import Celery
from flask import Flask
from kombu import Queue

DEFAULT_QUEUE_NAME = "volunteer_uploads"
CELERY_SQLITE_FILENAME = "seva_celery.sqlite"
TASKS_MODULE = "seva_app.importer.tasks"


@dataclass(frozen=True)
class CelerySettings:
    """Connection and limit settings resolved from the Flask config."""

    broker_url: str
    result_backend: str
    queue: str = DEFAULT_QUEUE_NAME
    time_limit: int = 15 * 60
    soft_time_limit: int = 12 * 60
    overrides: Mapping[str, Any] = field(default_factory=dict)

    def as_conf(self) -> dict[str, Any]:
        conf: dict[str, Any] = {
            "task_default_queue": self.queue,
            "task_queues": [Queue(self.queue, routing_key=self.queue)],
            "task_routes": {"importer.*": {"queue": self.queue}},
            "task_acks_late": True,
            "task_track_started": True,
            "task_time_limit": self.time_limit,
            "task_soft_time_limit": self.soft_time_limit,
            "worker_prefetch_multiplier": 1,
            "worker_hijack_root_logger": False,
            "result_extended": True,
            "broker_connection_retry_on_startup": True,
        }
        conf.update(self.overrides)
        return conf


def _sqlite_file(app: Flask) -> Path:
    configured = app.config.get("CELERY_SQLITE_PATH")
    path = Path(configured) if configured else Path(CELERY_SQLITE_FILENAME)
    if not path.is_absolute():
        path = Path(app.instance_path) / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _parse_overrides(app: Flask) -> dict[str, Any]:
    raw = app.config.get("CELERY_CONFIG")
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        app.logger.warning("CELERY_CONFIG is not valid JSON; ignoring value.", exc_info=True)
        return {}
    if not isinstance(parsed, dict):
        app.logger.warning("CELERY_CONFIG must decode to a JSON object; ignoring value.")
        return {}
    return parsed


def resolve_celery_settings(app: Flask) -> CelerySettings:
    broker_url = app.config.get("CELERY_BROKER_URL")
    result_backend = app.config.get("CELERY_RESULT_BACKEND")
    if not (broker_url and result_backend):
        # Celery expects forward slashes even on Windows.
        sqlite_path = _sqlite_file(app).as_posix()
        broker_url = broker_url or f"sqla+sqlite:///{sqlite_path}"
        result_backend = result_backend or f"db+sqlite:///{sqlite_path}"

    return CelerySettings(
        broker_url=broker_url,
        result_backend=result_backend,
        time_limit=int(app.config.get("IMPORTER_TASK_TIME_LIMIT", 15 * 60)),
        soft_time_limit=int(app.config.get("IMPORTER_TASK_SOFT_TIME_LIMIT", 12 * 60)),
        overrides=_parse_overrides(app),
    )


def create_celery_app(app: Flask, settings: CelerySettings | None = None) -> Celery:
    """
    Build the Celery app for ``app``; every task body runs inside an
    application context so the pipeline can reach ``current_app`` and the
    database session.
    """
    settings = settings or resolve_celery_settings(app)
    celery_app = Celery(
        app.import_name,
        broker=settings.broker_url,
        backend=settings.result_backend,
        include=(TASKS_MODULE,),
    )
    celery_app.conf.update(settings.as_conf())

    app.logger.info(
        "Importer Celery app configured",
        extra={
            "importer_celery_broker_url": settings.broker_url,
            "importer_celery_result_backend": settings.result_backend,
            "importer_celery_queue": settings.queue,
        },
    )
    logging.getLogger("celery.worker.strategy").setLevel(logging.WARNING)

    class FlaskContextTask(celery_app.Task):  # type: ignore[misc]
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_app.Task = FlaskContextTask  # type: ignore[assignment]
    celery_app.loader.import_default_modules()
    return celery_app


def ensure_celery_app(app: Flask, state: dict[str, Any]) -> Celery:
    """Create the Celery app once and keep it in the importer extension state."""
    if state.get("celery_app") is None:
        state["celery_app"] = create_celery_app(app)
    return state["celery_app"]


def get_celery_app(app: Flask) -> Celery | None:
    """
    Return the importer's Celery app, creating it lazily while the importer
    is enabled. ``None`` when the importer extension is missing or disabled.
    """
    state: dict[str, Any] | None = app.extensions.get("importer")  # type: ignore[arg-type]
    if not state:
        return None
    if state.get("celery_app") is None and not state.get("enabled"):
        return None
    return ensure_celery_app(app, state)

"""
Celery tasks for background volunteer uploads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from celery import shared_task
from flask import current_app

from seva_app.importer.pipeline import run_volunteer_upload
from seva_app.importer.utils import cleanup_upload

UPLOAD_TASK_NAME = "importer.volunteers.upload_spreadsheet"


@shared_task(name="importer.healthcheck", bind=True)
def importer_healthcheck(self) -> dict[str, Any]:
    """Heartbeat used by worker health checks."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "worker_hostname": self.request.hostname,
    }


@shared_task(name=UPLOAD_TASK_NAME, bind=True)
def upload_volunteer_spreadsheet(
    self,
    *,
    file_path: str,
    filename: str,
    dry_run: bool = False,
    keep_file: bool = False,
) -> dict[str, Any]:
    """
    Run the volunteer upload pipeline for a stored spreadsheet.

    Progress is published as ``PROGRESS`` state with ``meta={"progress": pct}``;
    the outcome dictionary is the task result.
    """

    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Upload file not found: {file_path}")

    def _publish(percent: int) -> None:
        if self.request.id:
            self.update_state(state="PROGRESS", meta={"progress": percent})

    try:
        outcome = run_volunteer_upload(
            path.read_bytes(),
            filename,
            dry_run=dry_run,
            progress=_publish,
            upload_id=self.request.id,
        )
    except Exception:
        current_app.logger.exception(
            "Background volunteer upload failed",
            extra={"importer_upload_id": self.request.id, "importer_file": filename},
        )
        raise
    finally:
        if not keep_file:
            cleanup_upload(path)

    payload = outcome.as_dict()
    payload["progress"] = 100
    return payload

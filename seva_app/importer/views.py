"""
Importer blueprint: spreadsheet upload, background task status and health.
"""

from __future__ import annotations

from http import HTTPStatus
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, url_for

from seva_app.utils.importer import is_worker_enabled

from .celery_app import DEFAULT_QUEUE_NAME, get_celery_app
from .pipeline import run_volunteer_upload
from .tasks import UPLOAD_TASK_NAME
from .utils import allowed_file, cleanup_upload, max_upload_bytes, persist_upload

importer_blueprint = Blueprint("importer", __name__, url_prefix="/importer")

_TRUTHY_FORM_VALUES = ("1", "true", "on", "yes")


def _json_error(message: str, status: HTTPStatus):
    return jsonify({"error": message}), status


def _validate_upload(file_storage) -> None:
    if file_storage is None or file_storage.filename == "":
        raise ValueError("No file uploaded.")
    if not allowed_file(file_storage.filename):
        raise ValueError("Unsupported file type; upload an .xlsx, .xlsm or .csv file.")

    max_bytes = max_upload_bytes(current_app)
    content_length = getattr(file_storage, "content_length", None) or request.content_length
    if content_length and content_length > max_bytes:
        raise OverflowError("Upload exceeds maximum size limit.")

    if not content_length:
        position = file_storage.stream.tell()
        file_storage.stream.seek(0, 2)
        size_bytes = file_storage.stream.tell()
        file_storage.stream.seek(position)
        if size_bytes > max_bytes:
            raise OverflowError("Upload exceeds maximum size limit.")


@importer_blueprint.get("/health")
def importer_healthcheck():
    """Lightweight health endpoint proving the importer blueprint mounted correctly."""
    importer_state = current_app.extensions.get("importer", {})
    return (
        jsonify(
            {
                "status": "ok",
                "enabled": importer_state.get("enabled", False),
                "worker_enabled": importer_state.get("worker_enabled", False),
                "queue": DEFAULT_QUEUE_NAME,
            }
        ),
        HTTPStatus.OK,
    )


@importer_blueprint.post("/upload")
def importer_upload():
    file_storage = request.files.get("file")
    try:
        _validate_upload(file_storage)
    except OverflowError as exc:
        return _json_error(str(exc), HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
    except ValueError as exc:
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)

    dry_run = str(request.form.get("dry_run", "")).lower() in _TRUTHY_FORM_VALUES
    filename = file_storage.filename

    if is_worker_enabled(current_app):
        return _enqueue_upload(file_storage, filename, dry_run=dry_run)

    try:
        outcome = run_volunteer_upload(file_storage.read(), filename, dry_run=dry_run)
    except Exception:
        current_app.logger.exception("Volunteer upload failed unexpectedly", extra={"importer_file": filename})
        return _json_error("Unexpected error while processing the upload.", HTTPStatus.INTERNAL_SERVER_ERROR)

    status = HTTPStatus.UNPROCESSABLE_ENTITY if outcome.rejected else HTTPStatus.OK
    return jsonify(outcome.as_dict()), status


def _enqueue_upload(file_storage, filename: str, *, dry_run: bool):
    stored_path: Path | None = None
    try:
        celery_app = get_celery_app(current_app)
        if celery_app is None:
            raise RuntimeError("Importer worker is not configured.")
        stored_path = persist_upload(file_storage, current_app)
        async_result = celery_app.send_task(
            UPLOAD_TASK_NAME,
            kwargs={"file_path": str(stored_path), "filename": filename, "dry_run": dry_run},
        )
    except Exception:
        current_app.logger.exception("Failed to enqueue volunteer upload", extra={"importer_file": filename})
        if stored_path is not None:
            cleanup_upload(stored_path)
        return _json_error("Unable to queue the upload for processing.", HTTPStatus.INTERNAL_SERVER_ERROR)

    current_app.logger.info(
        "Volunteer upload queued",
        extra={"importer_task_id": async_result.id, "importer_file": filename, "importer_dry_run": dry_run},
    )
    return (
        jsonify(
            {
                "task_id": async_result.id,
                "status": "queued",
                "dry_run": dry_run,
                "status_url": url_for("importer.importer_task_status", task_id=async_result.id),
            }
        ),
        HTTPStatus.ACCEPTED,
    )


@importer_blueprint.get("/tasks/<task_id>")
def importer_task_status(task_id: str):
    celery_app = get_celery_app(current_app)
    if celery_app is None:
        return _json_error("Importer worker is not configured.", HTTPStatus.NOT_FOUND)

    result = celery_app.AsyncResult(task_id)
    state = result.state
    payload = {"task_id": task_id, "state": state, "progress": 0}
    if state == "PROGRESS":
        info = result.info or {}
        payload["progress"] = int(info.get("progress", 0)) if isinstance(info, dict) else 0
    elif state == "SUCCESS":
        payload["progress"] = 100
        payload["outcome"] = result.result
    elif state == "FAILURE":
        payload["error"] = str(result.result)
    return jsonify(payload), HTTPStatus.OK

"""
Helpers for storing uploaded spreadsheets while a background upload runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
from uuid import uuid4

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from seva_app.importer.adapters import SUPPORTED_EXTENSIONS

DEFAULT_UPLOAD_SUBDIR = "volunteer_uploads"


def resolve_upload_directory(app) -> Path:
    """
    Determine and create (if necessary) the importer upload directory.

    Relative ``IMPORTER_UPLOAD_DIR`` values are taken from the instance folder.
    """

    configured = app.config.get("IMPORTER_UPLOAD_DIR")
    if not configured:
        upload_dir = Path(app.instance_path) / DEFAULT_UPLOAD_SUBDIR
    else:
        upload_dir = Path(configured)
        if not upload_dir.is_absolute():
            upload_dir = Path(app.instance_path) / upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def allowed_file(filename: str, allowed_extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> bool:
    if not filename or "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    return extension in {ext.lower() for ext in allowed_extensions}


def max_upload_bytes(app) -> int:
    mb_limit = app.config.get("IMPORTER_MAX_UPLOAD_MB", 25)
    try:
        return int(mb_limit) * 1024 * 1024
    except (TypeError, ValueError):
        return 25 * 1024 * 1024


def persist_upload(file_storage: FileStorage, app) -> Path:
    """
    Save the upload under ``resolve_upload_directory(app)`` with a UUID name.

    The original extension is kept because the reader picks its decoder from it.
    """

    upload_dir = resolve_upload_directory(app)
    original_name = secure_filename(file_storage.filename or "")
    extension = Path(original_name).suffix.lower() or ".xlsx"
    target_path = upload_dir / f"{uuid4().hex}{extension}"
    file_storage.stream.seek(0)
    file_storage.save(target_path)
    current_app.logger.debug("Volunteer upload persisted to %s", target_path)
    return target_path


def cleanup_upload(path: Path) -> None:
    """
    Remove a stored upload, logging but ignoring filesystem errors.
    """

    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        current_app.logger.warning("Failed to remove volunteer upload %s: %s", path, exc)

"""
Logging configuration for the Seva dashboard.

Configures ``app.logger`` from the monitoring config: a console handler
and/or a rotating file handler, rendered either as JSON lines or as
single-line text. Fields passed through ``extra={...}`` are appended to
every record.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

from flask.logging import default_handler

_STANDARD_ATTRS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}

_HANDLER_FLAG = "_seva_handler"


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


def _timestamp(record: logging.LogRecord) -> str:
    moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{int(record.msecs):03d}Z"


class TextLogFormatter(logging.Formatter):
    """One line per record: timestamp, level, logger, message, then key=value extras."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{_timestamp(record)} {record.levelname:<7} {record.name} {record.getMessage()}"
        extras = " ".join(f"{key}={value}" for key, value in sorted(_record_extras(record).items()))
        if extras:
            line = f"{line} {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonLogFormatter(logging.Formatter):
    def __init__(self, app_name: str = "Seva Dashboard", app_version: str | None = None) -> None:
        super().__init__()
        self.app_name = app_name
        self.app_version = app_version

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "service": self.app_name,
            "version": self.app_version,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


def _build_formatter(app) -> logging.Formatter:
    if str(app.config.get("LOG_FORMAT", "text")).lower() == "json":
        return JsonLogFormatter(app.config.get("APP_NAME", "Seva Dashboard"), app.config.get("APP_VERSION"))
    return TextLogFormatter()


def setup_logging(app) -> None:
    """
    (Re)configure ``app.logger``.

    Replaces Flask's default stderr handler. Safe to call repeatedly:
    handlers installed by a previous call are replaced rather than stacked.
    """

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(app)

    # Flask's stderr handler duplicates ours
    app.logger.removeHandler(default_handler)
    for handler in list(app.logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            app.logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, "seva.log"),
                maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 10485760)),
                backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 10)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        setattr(handler, _HANDLER_FLAG, True)
        app.logger.addHandler(handler)

    app.logger.setLevel(level)

    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    app.logger.info(
        "Logging configured",
        extra={"log_level": logging.getLevelName(level), "log_format": app.config.get("LOG_FORMAT", "text")},
    )

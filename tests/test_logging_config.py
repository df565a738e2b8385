"""Tests for logging setup and formatters"""

import json
import logging

from flask.logging import default_handler

from seva_app.utils.logging_config import JsonLogFormatter, TextLogFormatter, setup_logging


def _record(message="Volunteer upload finished", **extra):
    record = logging.LogRecord("seva", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras():
    line = JsonLogFormatter("Seva Dashboard", "1.2.3").format(_record(importer_status="succeeded"))

    payload = json.loads(line)
    assert payload["message"] == "Volunteer upload finished"
    assert payload["level"] == "INFO"
    assert payload["service"] == "Seva Dashboard"
    assert payload["version"] == "1.2.3"
    assert payload["importer_status"] == "succeeded"


def test_text_formatter_appends_sorted_extras():
    line = TextLogFormatter().format(_record(importer_batch=2, importer_status="failed"))

    assert line.endswith("INFO    seva Volunteer upload finished importer_batch=2 importer_status=failed")


def test_setup_logging_does_not_stack_handlers(app):
    setup_logging(app)
    first = len(app.logger.handlers)

    setup_logging(app)

    assert len(app.logger.handlers) == first


def test_setup_logging_writes_rotating_file(app, tmp_path):
    app.config.update(ENABLE_FILE_LOGGING=True, LOG_DIR=str(tmp_path), LOG_FORMAT="json", LOG_LEVEL="INFO")
    try:
        setup_logging(app)
        app.logger.info("hello", extra={"importer_upload_id": "abc"})
        for handler in app.logger.handlers:
            handler.flush()

        lines = (tmp_path / "seva.log").read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["importer_upload_id"] == "abc"
    finally:
        app.config.update(ENABLE_FILE_LOGGING=False, LOG_FORMAT="text")
        setup_logging(app)


def test_level_from_config(app):
    app.config["LOG_LEVEL"] = "WARNING"
    setup_logging(app)

    assert app.logger.level == logging.WARNING


def test_flask_default_handler_is_removed(app):
    setup_logging(app)

    assert default_handler not in app.logger.handlers
    console = [handler for handler in app.logger.handlers if type(handler) is logging.StreamHandler]
    assert len(console) == 1

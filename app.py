# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import event

# .env must be loaded before the config classes read the environment
load_dotenv()

from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from seva_app.importer import init_importer  # noqa: E402
from seva_app.models import db  # noqa: E402
from seva_app.routes import init_routes  # noqa: E402
from seva_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

CONFIG_BY_ENV = {
    "production": (ProductionConfig, ProductionMonitoringConfig),
    "testing": (TestingConfig, TestingMonitoringConfig),
    "development": (DevelopmentConfig, DevelopmentMonitoringConfig),
}

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def _apply_sqlite_pragmas(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    except Exception as exc:
        logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)
    finally:
        cursor.close()


def load_config(flask_app, flask_env):
    app_config, monitoring_config = CONFIG_BY_ENV.get(flask_env, CONFIG_BY_ENV["development"])
    flask_app.config.from_object(app_config)
    flask_app.config.from_object(monitoring_config)
    # Werkzeug rejects bodies over this before the upload view sees them;
    # the view applies the exact IMPORTER_MAX_UPLOAD_MB limit.
    flask_app.config["MAX_CONTENT_LENGTH"] = (flask_app.config["IMPORTER_MAX_UPLOAD_MB"] + 1) * 1024 * 1024


def init_database(flask_app):
    db.init_app(flask_app)
    with flask_app.app_context():
        engine = db.engine
        if engine.url.drivername.startswith("sqlite") and not getattr(engine, "_seva_pragmas", False):
            event.listen(engine, "connect", _apply_sqlite_pragmas)
            engine._seva_pragmas = True  # type: ignore[attr-defined]
        # Tests create and drop their own tables
        if not flask_app.config.get("TESTING", False):
            db.create_all()


def register_metrics_endpoint(flask_app):
    """Expose the Prometheus registry when MONITORING_ENABLED is set."""
    if not flask_app.config.get("MONITORING_ENABLED", False):
        return

    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    flask_app.add_url_rule(flask_app.config.get("METRICS_ENDPOINT", "/metrics"), "metrics", metrics)


def register_error_handlers(flask_app):
    @flask_app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Not found"}), 404

    @flask_app.errorhandler(413)
    def request_too_large(error):
        return jsonify({"error": "Upload exceeds maximum size limit."}), 413

    @flask_app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


app = Flask(__name__)

flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

load_config(app, flask_env)
setup_logging(app)
init_database(app)
init_importer(app)
init_routes(app)
register_metrics_endpoint(app)
register_error_handlers(app)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)

# config/base.py
import os
import warnings

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DEV_SECRET_KEY = "dev-secret-key-change-in-production"


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None, maximum=None):
    """
    Parse an integer setting, falling back to ``default`` on bad input.

    Values outside the optional bounds are clamped.
    """
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        number = minimum
    if maximum is not None and number > maximum:
        number = maximum
    return number


def _resolve_secret_key(flask_env):
    secret_key = os.environ.get("SECRET_KEY")
    if secret_key:
        return secret_key
    if flask_env == "production":
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )
    if flask_env == "testing":
        return "test-secret-key-placeholder"
    warnings.warn("SECRET_KEY not set. Using an insecure development default.", UserWarning)
    return _DEV_SECRET_KEY


def _sqlite_engine_options(uri):
    """Multi-threaded dev server and Celery worker share one SQLite file."""
    if not uri or not uri.startswith("sqlite"):
        return {}
    return {"connect_args": {"check_same_thread": False, "timeout": 5}}


class Config:
    SECRET_KEY = _resolve_secret_key(os.environ.get("FLASK_ENV", "development"))

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Volunteer upload pipeline
    IMPORTER_ENABLED = _coerce_bool(os.environ.get("IMPORTER_ENABLED"), default=True)
    IMPORTER_BATCH_SIZE = _coerce_int(os.environ.get("IMPORTER_BATCH_SIZE"), 50, minimum=1, maximum=1000)
    IMPORTER_BATCH_CONCURRENCY = _coerce_int(os.environ.get("IMPORTER_BATCH_CONCURRENCY"), 1, minimum=1)
    IMPORTER_MAX_UPLOAD_MB = _coerce_int(os.environ.get("IMPORTER_MAX_UPLOAD_MB"), 25, minimum=1)
    IMPORTER_AGE_MIN = _coerce_int(os.environ.get("IMPORTER_AGE_MIN"), 18, minimum=0)
    IMPORTER_AGE_MAX = _coerce_int(os.environ.get("IMPORTER_AGE_MAX"), 100, minimum=1)
    IMPORTER_UPLOAD_DIR = os.environ.get("IMPORTER_UPLOAD_DIR")

    if IMPORTER_AGE_MIN > IMPORTER_AGE_MAX:
        raise ValueError("IMPORTER_AGE_MIN must not exceed IMPORTER_AGE_MAX.")

    # Background worker
    IMPORTER_WORKER_ENABLED = _coerce_bool(os.environ.get("IMPORTER_WORKER_ENABLED"), default=False)
    IMPORTER_TASK_TIME_LIMIT = _coerce_int(os.environ.get("IMPORTER_TASK_TIME_LIMIT"), 15 * 60, minimum=60)
    IMPORTER_TASK_SOFT_TIME_LIMIT = _coerce_int(os.environ.get("IMPORTER_TASK_SOFT_TIME_LIMIT"), 12 * 60, minimum=30)
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")


class DevelopmentConfig(Config):
    DEBUG = True
    _instance_dir = os.path.join(_PROJECT_ROOT, "instance")
    os.makedirs(_instance_dir, exist_ok=True)

    # sqlite:///absolute/path needs forward slashes on Windows too
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(_instance_dir, "seva_dev.db").replace("\\", "/"),
    )
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI)
    IMPORTER_ENABLED = True
    IMPORTER_WORKER_ENABLED = False


class ProductionConfig(Config):
    DEBUG = False
    _database_url = os.environ.get("DATABASE_URL")
    # Heroku-style URLs use the scheme SQLAlchemy 1.4+ no longer accepts
    if _database_url and _database_url.startswith("postgres://"):
        _database_url = _database_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _database_url
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(_database_url)

# config/validation.py

"""
Environment variable validation for the volunteer dashboard.
Validates required environment variables at startup.
"""

import json
import os
import sys
from typing import List, Tuple


def _validate_positive_int(name: str, errors: List[str]) -> None:
    raw_value = os.environ.get(name)
    if raw_value is None or raw_value.strip() == "":
        return
    try:
        value = int(raw_value)
    except ValueError:
        errors.append(f"{name} must be an integer (got {raw_value!r}).")
        return
    if value < 1:
        errors.append(f"{name} must be at least 1 (got {value}).")


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    errors = []

    # Importer tuning knobs are checked everywhere so typos fail fast.
    for name in ("IMPORTER_BATCH_SIZE", "IMPORTER_BATCH_CONCURRENCY", "IMPORTER_MAX_UPLOAD_MB"):
        _validate_positive_int(name, errors)

    celery_config = os.environ.get("CELERY_CONFIG")
    if celery_config:
        try:
            parsed = json.loads(celery_config)
        except json.JSONDecodeError:
            parsed = None
        if not isinstance(parsed, dict):
            errors.append("CELERY_CONFIG must be a JSON object.")

    if flask_env != "production":
        return len(errors) == 0, errors

    secret_key = os.environ.get("SECRET_KEY", "")
    if not secret_key or secret_key in ("your-secret-key", "your_secret_key"):
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        errors.append("DATABASE_URL is required in production. Set it to your PostgreSQL connection string.")

    if os.environ.get("IMPORTER_WORKER_ENABLED", "false").lower() == "true":
        if not os.environ.get("CELERY_BROKER_URL"):
            errors.append("CELERY_BROKER_URL is required when IMPORTER_WORKER_ENABLED=true in production")
        if not os.environ.get("CELERY_RESULT_BACKEND"):
            errors.append("CELERY_RESULT_BACKEND is required when IMPORTER_WORKER_ENABLED=true in production")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.
    """
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)

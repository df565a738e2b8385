from flask import Flask

from seva_app.importer.celery_app import (
    DEFAULT_QUEUE_NAME,
    create_celery_app,
    get_celery_app,
    resolve_celery_settings,
)


def _flask_app(tmp_path, **config):
    app = Flask(__name__, instance_path=str(tmp_path))
    app.config.update(config)
    return app


def test_defaults_to_sqlite_in_instance_folder(tmp_path):
    settings = resolve_celery_settings(_flask_app(tmp_path))

    expected = (tmp_path / "seva_celery.sqlite").as_posix()
    assert settings.broker_url == f"sqla+sqlite:///{expected}"
    assert settings.result_backend == f"db+sqlite:///{expected}"
    assert settings.queue == DEFAULT_QUEUE_NAME


def test_configured_urls_win(tmp_path):
    settings = resolve_celery_settings(
        _flask_app(tmp_path, CELERY_BROKER_URL="redis://broker/0", CELERY_RESULT_BACKEND="redis://broker/1")
    )

    assert settings.broker_url == "redis://broker/0"
    assert settings.result_backend == "redis://broker/1"


def test_celery_config_json_is_merged_last(tmp_path):
    settings = resolve_celery_settings(_flask_app(tmp_path, CELERY_CONFIG='{"task_acks_late": false}'))

    assert settings.as_conf()["task_acks_late"] is False


def test_invalid_celery_config_is_ignored(tmp_path):
    settings = resolve_celery_settings(_flask_app(tmp_path, CELERY_CONFIG="[1, 2"))

    assert settings.overrides == {}


def test_created_app_routes_to_upload_queue(tmp_path):
    celery_app = create_celery_app(_flask_app(tmp_path))

    assert celery_app.conf.task_default_queue == DEFAULT_QUEUE_NAME
    assert "importer.volunteers.upload_spreadsheet" in celery_app.tasks


def test_get_celery_app_without_importer_state(tmp_path):
    assert get_celery_app(_flask_app(tmp_path)) is None


def test_get_celery_app_is_cached(tmp_path):
    app = _flask_app(tmp_path)
    app.extensions["importer"] = {"enabled": True, "worker_enabled": True, "celery_app": None}

    first = get_celery_app(app)

    assert get_celery_app(app) is first

import io
import os
from unittest.mock import MagicMock, patch

import pytest

from seva_app.models import Volunteer


def _post(client, data, filename="volunteers.xlsx", **form):
    payload = {"file": (io.BytesIO(data), filename)}
    payload.update(form)
    return client.post("/importer/upload", data=payload, content_type="multipart/form-data")


def test_health_reports_flags(client):
    response = client.get("/importer/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["enabled"] is True
    assert body["queue"] == "volunteer_uploads"


def test_missing_file_is_bad_request(client):
    response = client.post("/importer/upload", data={}, content_type="multipart/form-data")

    assert response.status_code == 400
    assert response.get_json()["error"] == "No file uploaded."


def test_unsupported_extension_is_bad_request(client):
    response = _post(client, b"hello", filename="volunteers.pdf")

    assert response.status_code == 400


def test_oversized_upload_is_rejected(client, workbook_factory, volunteer_header, make_volunteer_rows):
    data = workbook_factory(volunteer_header, make_volunteer_rows(5))

    with patch("seva_app.importer.views.max_upload_bytes", return_value=100):
        response = _post(client, data)

    assert response.status_code == 413
    assert Volunteer.query.count() == 0


def test_successful_upload_returns_outcome(client, workbook_factory, volunteer_header, make_volunteer_rows):
    response = _post(client, workbook_factory(volunteer_header, make_volunteer_rows(4)))

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "succeeded"
    assert body["successful_insert_count"] == 4
    assert body["batch_errors"] == []
    assert Volunteer.query.count() == 4


def test_rejected_upload_is_unprocessable(client, workbook_factory):
    response = _post(client, workbook_factory(["Age"], [[30]]))

    assert response.status_code == 422
    body = response.get_json()
    assert body["status"] == "rejected"
    assert body["rejection_reasons"] == ["Missing required columns: SAI Connect ID, Full Name"]


def test_truncated_workbook_is_unprocessable(client, broken_workbook_factory, volunteer_header, make_volunteer_rows):
    response = _post(client, broken_workbook_factory(volunteer_header, make_volunteer_rows(3)))

    assert response.status_code == 422
    assert response.get_json()["status"] == "rejected"
    assert Volunteer.query.count() == 0


def test_dry_run_form_flag(client, workbook_factory, volunteer_header, make_volunteer_rows):
    response = _post(client, workbook_factory(volunteer_header, make_volunteer_rows(2)), dry_run="true")

    assert response.status_code == 200
    assert response.get_json()["status"] == "dry_run"
    assert Volunteer.query.count() == 0


def test_csv_upload_is_accepted(client, csv_factory, volunteer_header, make_volunteer_rows):
    response = _post(client, csv_factory(volunteer_header, make_volunteer_rows(2)), filename="volunteers.csv")

    assert response.status_code == 200
    assert Volunteer.query.count() == 2


def test_unexpected_error_is_server_error(client, workbook_factory, volunteer_header, make_volunteer_rows):
    with patch("seva_app.importer.views.run_volunteer_upload", side_effect=RuntimeError("boom")):
        response = _post(client, workbook_factory(volunteer_header, make_volunteer_rows(1)))

    assert response.status_code == 500


@pytest.fixture
def worker_enabled(app):
    app.config["IMPORTER_WORKER_ENABLED"] = True
    yield
    app.config["IMPORTER_WORKER_ENABLED"] = False


def test_upload_is_queued_when_worker_enabled(
    app, client, mock_celery, worker_enabled, workbook_factory, volunteer_header, make_volunteer_rows
):
    mock_celery.return_value.send_task.return_value = MagicMock(id="task-123")

    response = _post(client, workbook_factory(volunteer_header, make_volunteer_rows(2)), dry_run="1")

    assert response.status_code == 202
    body = response.get_json()
    assert body["task_id"] == "task-123"
    assert body["status_url"] == "/importer/tasks/task-123"
    assert body["dry_run"] is True

    args, kwargs = mock_celery.return_value.send_task.call_args
    assert args[0] == "importer.volunteers.upload_spreadsheet"
    stored = kwargs["kwargs"]["file_path"]
    assert stored.startswith(app.config["IMPORTER_UPLOAD_DIR"])
    assert stored.endswith(".xlsx")
    assert Volunteer.query.count() == 0


def test_queue_failure_cleans_up_stored_file(
    app, client, mock_celery, worker_enabled, workbook_factory, volunteer_header, make_volunteer_rows
):
    mock_celery.return_value.send_task.side_effect = RuntimeError("broker down")

    response = _post(client, workbook_factory(volunteer_header, make_volunteer_rows(1)))

    assert response.status_code == 500
    assert os.listdir(app.config["IMPORTER_UPLOAD_DIR"]) == []


def test_task_status_reports_progress(client, mock_celery):
    mock_celery.return_value.AsyncResult.return_value = MagicMock(state="PROGRESS", info={"progress": 66})

    response = client.get("/importer/tasks/task-123")

    assert response.status_code == 200
    assert response.get_json() == {"task_id": "task-123", "state": "PROGRESS", "progress": 66}


def test_task_status_returns_outcome_on_success(client, mock_celery):
    outcome = {"status": "succeeded", "successful_insert_count": 3}
    mock_celery.return_value.AsyncResult.return_value = MagicMock(state="SUCCESS", result=outcome)

    body = client.get("/importer/tasks/task-123").get_json()

    assert body["progress"] == 100
    assert body["outcome"] == outcome


def test_task_status_without_worker_is_not_found(client, mock_celery):
    mock_celery.return_value = None

    assert client.get("/importer/tasks/task-123").status_code == 404

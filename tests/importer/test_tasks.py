from unittest.mock import patch

import pytest

from seva_app.importer.tasks import importer_healthcheck, upload_volunteer_spreadsheet
from seva_app.models import Volunteer


@pytest.fixture
def stored_upload(app, workbook_factory, volunteer_header, make_volunteer_rows, tmp_path):
    path = tmp_path / "stored.xlsx"
    path.write_bytes(workbook_factory(volunteer_header, make_volunteer_rows(3)))
    return path


def test_task_runs_pipeline_and_removes_file(stored_upload):
    payload = upload_volunteer_spreadsheet.run(file_path=str(stored_upload), filename="volunteers.xlsx")

    assert payload["status"] == "succeeded"
    assert payload["progress"] == 100
    assert Volunteer.query.count() == 3
    assert not stored_upload.exists()


def test_task_can_keep_file(stored_upload):
    upload_volunteer_spreadsheet.run(
        file_path=str(stored_upload), filename="volunteers.xlsx", dry_run=True, keep_file=True
    )

    assert stored_upload.exists()
    assert Volunteer.query.count() == 0


def test_task_passes_progress_callback(stored_upload):
    with patch("seva_app.importer.tasks.run_volunteer_upload") as run_upload:
        run_upload.return_value.as_dict.return_value = {"status": "succeeded"}
        upload_volunteer_spreadsheet.run(file_path=str(stored_upload), filename="volunteers.xlsx")

    kwargs = run_upload.call_args.kwargs
    assert callable(kwargs["progress"])
    assert kwargs["dry_run"] is False


def test_task_failure_still_removes_file(stored_upload):
    with patch("seva_app.importer.tasks.run_volunteer_upload", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            upload_volunteer_spreadsheet.run(file_path=str(stored_upload), filename="volunteers.xlsx")

    assert not stored_upload.exists()


def test_task_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        upload_volunteer_spreadsheet.run(file_path=str(tmp_path / "gone.xlsx"), filename="gone.xlsx")


def test_healthcheck_task():
    assert importer_healthcheck.run()["status"] == "ok"

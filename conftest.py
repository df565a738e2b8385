# conftest.py

import io
import os
import zipfile
from unittest.mock import patch

import pytest
from openpyxl import Workbook

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from seva_app.models import RegisteredVolunteer, Volunteer, db  # noqa: E402

VOLUNTEER_HEADER = ["SAI Connect ID", "Full Name", "Age", "Mobile Number", "SSS District", "Sevadal Training"]


TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret-key-for-testing-only",
    "MONITORING_ENABLED": False,
    "ENABLE_FILE_LOGGING": False,
    "ENABLE_CONSOLE_LOGGING": True,
    "LOG_LEVEL": "DEBUG",
    "LOG_FORMAT": "text",
    "IMPORTER_ENABLED": True,
    "IMPORTER_WORKER_ENABLED": False,
    "IMPORTER_BATCH_SIZE": 50,
    "IMPORTER_BATCH_CONCURRENCY": 1,
    "IMPORTER_MAX_UPLOAD_MB": 25,
    "IMPORTER_AGE_MIN": 18,
    "IMPORTER_AGE_MAX": 100,
}


@pytest.fixture(scope="function")
def app(tmp_path):
    """
    The module-level app reset for one test.

    The engine was built from TestingConfig (in-memory SQLite), so tables are
    dropped and recreated around every test instead of swapping databases.
    """
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    flask_app.config.update(TEST_CONFIG, IMPORTER_UPLOAD_DIR=str(upload_dir))

    # Re-initialize logging with the reset config
    from seva_app.utils.logging_config import setup_logging

    setup_logging(flask_app)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


def build_workbook(header, rows):
    """Return the bytes of an .xlsx workbook with ``header`` on row 1."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(header))
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def truncate_worksheet(data, member="xl/worksheets/sheet1.xml"):
    """Rewrite a workbook with ``member`` cut to half its length."""
    source = io.BytesIO(data)
    target = io.BytesIO()
    with zipfile.ZipFile(source) as original, zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as broken:
        for item in original.infolist():
            content = original.read(item.filename)
            if item.filename == member:
                content = content[: len(content) // 2]
            broken.writestr(item, content)
    return target.getvalue()


def build_csv(header, rows):
    lines = [",".join(str(cell) for cell in header)]
    for row in rows:
        lines.append(",".join("" if cell is None else str(cell) for cell in row))
    return ("\n".join(lines) + "\n").encode("utf-8")


def volunteer_rows(count, *, start=1):
    """Valid rows matching ``VOLUNTEER_HEADER``."""
    return [
        [f"{start + index:06d}", f"Volunteer {start + index}", 30, f"98765{start + index:05d}", "Pune", "yes"]
        for index in range(count)
    ]


@pytest.fixture
def workbook_factory():
    return build_workbook


@pytest.fixture
def csv_factory():
    return build_csv


@pytest.fixture
def broken_workbook_factory():
    def _build(header, rows):
        return truncate_worksheet(build_workbook(header, rows))

    return _build


@pytest.fixture
def volunteer_header():
    return list(VOLUNTEER_HEADER)


@pytest.fixture
def make_volunteer_rows():
    return volunteer_rows


@pytest.fixture
def sample_volunteers(app):
    """Three volunteers: one active, one registered, one cancelled"""
    active = Volunteer(sai_connect_id="100001", full_name="Asha Rao", sss_district="Pune", mobile_number="9876500001")
    registered = Volunteer(sai_connect_id="100002", full_name="Ravi Kumar", sss_district="Nashik")
    cancelled = Volunteer(sai_connect_id="100003", full_name="Meena Iyer", sss_district="Pune", is_cancelled=True)
    db.session.add_all([active, registered, cancelled])
    db.session.flush()
    db.session.add(RegisteredVolunteer(sai_connect_id="100002", batch="Batch A", service_location="North Gate"))
    db.session.commit()
    return {"active": active, "registered": registered, "cancelled": cancelled}


@pytest.fixture
def mock_celery():
    """Patch the Celery lookup used by the importer views"""
    with patch("seva_app.importer.views.get_celery_app") as mock_get:
        yield mock_get


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and ensure testing environment"""
    os.environ["FLASK_ENV"] = "testing"

    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers"""
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.slow)
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

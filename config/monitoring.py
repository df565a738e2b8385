# config/monitoring.py

import os

from prometheus_client import Counter, Histogram


class MonitoringConfig:
    """Monitoring and logging configuration"""

    MONITORING_ENABLED = os.environ.get("MONITORING_ENABLED", "false").lower() == "true"
    METRICS_ENDPOINT = os.environ.get("METRICS_ENDPOINT", "/metrics")

    # Logging Configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # 'json' or 'text'
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_MAX_BYTES = int(os.environ.get("LOG_FILE_MAX_BYTES", 10485760))  # 10MB
    LOG_FILE_BACKUP_COUNT = int(os.environ.get("LOG_FILE_BACKUP_COUNT", 10))

    # Console and File Logging
    ENABLE_FILE_LOGGING = os.environ.get("ENABLE_FILE_LOGGING", "true").lower() == "true"
    ENABLE_CONSOLE_LOGGING = os.environ.get("ENABLE_CONSOLE_LOGGING", "true").lower() == "true"

    APP_NAME = os.environ.get("APP_NAME", "Seva Dashboard")
    APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")


class DevelopmentMonitoringConfig(MonitoringConfig):
    """Development-specific monitoring configuration"""

    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = True
    ENABLE_CONSOLE_LOGGING = True


class ProductionMonitoringConfig(MonitoringConfig):
    """Production-specific monitoring configuration"""

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "json"
    ENABLE_FILE_LOGGING = True
    ENABLE_CONSOLE_LOGGING = False  # Usually handled by container orchestration


class TestingMonitoringConfig(MonitoringConfig):
    """Testing-specific monitoring configuration"""

    MONITORING_ENABLED = False
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False


class ImporterMonitoring:
    """Prometheus metrics for the volunteer upload pipeline."""

    UPLOAD_COUNTER = Counter(
        "importer_volunteer_uploads_total",
        "Volunteer spreadsheet uploads by outcome status.",
        labelnames=("status",),
    )
    UPLOAD_ROWS = Histogram(
        "importer_volunteer_upload_rows",
        "Data rows read per volunteer upload.",
        labelnames=("status",),
        buckets=(0, 10, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
    )
    UPLOAD_LATENCY = Histogram(
        "importer_volunteer_upload_seconds",
        "End-to-end duration of a volunteer upload.",
        labelnames=("status",),
        buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
    )
    BATCH_COUNTER = Counter(
        "importer_volunteer_batches_total",
        "Volunteer insert batches by status.",
        labelnames=("status",),
    )
    BATCH_LATENCY = Histogram(
        "importer_volunteer_batch_seconds",
        "Duration of a single volunteer insert batch.",
        labelnames=("status",),
        buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
    )

    @classmethod
    def record_upload(cls, *, status: str, duration_seconds: float, total_rows: int):
        cls.UPLOAD_COUNTER.labels(status=status).inc()
        cls.UPLOAD_ROWS.labels(status=status).observe(float(max(total_rows, 0)))
        cls.UPLOAD_LATENCY.labels(status=status).observe(max(duration_seconds, 0.0))

    @classmethod
    def record_batch(cls, *, status: str, duration_seconds: float):
        cls.BATCH_COUNTER.labels(status=status).inc()
        cls.BATCH_LATENCY.labels(status=status).observe(max(duration_seconds, 0.0))

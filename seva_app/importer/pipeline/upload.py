"""
Volunteer spreadsheet upload orchestration.

Stages run strictly in sequence: read -> resolve headers -> normalize and
validate every row -> de-duplicate -> batched insert -> outcome. Header
problems and row validation errors reject the whole upload before anything
is written; store failures only affect the batch they happen in.
"""

from __future__ import annotations

import time
import uuid
from typing import IO, List, Optional

from flask import current_app, has_app_context

from config.monitoring import ImporterMonitoring
from seva_app.importer.adapters import RawSheet, read_spreadsheet
from seva_app.importer.contracts import UploadSchema, get_volunteer_upload_schema
from seva_app.importer.errors import HeaderResolutionError, SpreadsheetReadError, UploadValidationError
from seva_app.importer.store import RecordStore, SQLAlchemyRecordStore

from .batch_writer import DEFAULT_BATCH_SIZE, BatchWriter, ProgressCallback, ProgressReporter, UploadCancellation
from .dedupe import deduplicate
from .headers import HeaderMapping, HeaderResolver
from .normalize import CandidateRecord, RowNormalizer
from .report import UploadOutcome, build_outcome, build_rejected_outcome
from .validate import RowValidator

NO_DATA_MESSAGE = "No data found in the uploaded file."
UPLOAD_ERROR_STATUS = "error"

PROGRESS_STARTED = 10
PROGRESS_READ = 30
PROGRESS_VALIDATED = 50


class VolunteerUploadPipeline:
    """Run one volunteer upload from raw file bytes to an ``UploadOutcome``."""

    def __init__(
        self,
        store: RecordStore | None = None,
        *,
        schema: UploadSchema | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_in_flight: int = 1,
        progress: ProgressCallback | None = None,
        cancellation: UploadCancellation | None = None,
        upload_id: str | None = None,
    ) -> None:
        self.schema = schema or get_volunteer_upload_schema()
        self._store = store
        self.batch_size = batch_size
        self.max_in_flight = max_in_flight
        self.progress = ProgressReporter(progress)
        self.cancellation = cancellation
        self.upload_id = upload_id or uuid.uuid4().hex

    @property
    def store(self) -> RecordStore:
        if self._store is None:
            self._store = SQLAlchemyRecordStore()
        return self._store

    def run(self, buffer: bytes | IO[bytes], filename: str, *, dry_run: bool = False) -> UploadOutcome:
        started = time.perf_counter()
        self.progress.emit(PROGRESS_STARTED)
        self._log_info("Volunteer upload started", filename=filename, dry_run=dry_run)

        outcome: UploadOutcome | None = None
        try:
            outcome = self._execute(buffer, filename, dry_run=dry_run)
        finally:
            self.progress.emit(100)
            ImporterMonitoring.record_upload(
                status=outcome.status.value if outcome is not None else UPLOAD_ERROR_STATUS,
                duration_seconds=time.perf_counter() - started,
                total_rows=outcome.total_rows if outcome is not None else 0,
            )
        self._log_outcome(outcome)
        return outcome

    def _execute(self, buffer: bytes | IO[bytes], filename: str, *, dry_run: bool) -> UploadOutcome:
        try:
            sheet = read_spreadsheet(buffer, filename)
        except SpreadsheetReadError as exc:
            return build_rejected_outcome([str(exc)], dry_run=dry_run)
        self.progress.emit(PROGRESS_READ)

        if not sheet.rows:
            return build_rejected_outcome(
                [NO_DATA_MESSAGE],
                rows_skipped_blank=sheet.rows_skipped_blank,
                dry_run=dry_run,
            )

        try:
            mapping = HeaderResolver(self.schema).resolve(sheet.header)
        except HeaderResolutionError as exc:
            return build_rejected_outcome(
                exc.reasons,
                total_rows=sheet.total_rows,
                rows_skipped_blank=sheet.rows_skipped_blank,
                dry_run=dry_run,
            )

        warnings: List[str] = []
        try:
            records = self._validate_rows(sheet, mapping, warnings)
        except UploadValidationError as exc:
            return build_rejected_outcome(
                exc.errors,
                total_rows=sheet.total_rows,
                validation_error_count=len(exc.errors),
                warnings=warnings,
                unmatched_headers=mapping.unmatched,
                rows_skipped_blank=sheet.rows_skipped_blank,
                dry_run=dry_run,
            )

        dedupe = deduplicate(records, unique_key=self.schema.unique_key)
        self.progress.emit(PROGRESS_VALIDATED)

        summary = None
        if not dry_run:
            writer = BatchWriter(
                self.store,
                batch_size=self.batch_size,
                max_in_flight=self.max_in_flight,
                progress=self.progress,
                cancellation=self.cancellation,
                base_offset=PROGRESS_VALIDATED,
                progress_range=100 - PROGRESS_VALIDATED,
                unique_key=self.schema.unique_key,
                upload_id=self.upload_id,
            )
            summary = writer.write(dedupe.records)

        return build_outcome(
            dedupe,
            summary,
            warnings=warnings,
            unmatched_headers=mapping.unmatched,
            rows_skipped_blank=sheet.rows_skipped_blank,
            dry_run=dry_run,
        )

    def _validate_rows(self, sheet: RawSheet, mapping: HeaderMapping, warnings: List[str]) -> List[CandidateRecord]:
        normalizer = RowNormalizer(self.schema, mapping)
        validator = RowValidator(self.schema)
        accepted: List[CandidateRecord] = []
        errors: List[str] = []

        for row in sheet.rows:
            outcome = validator.validate(normalizer.normalize(row.cells), row.line_number)
            warnings.extend(outcome.warnings)
            if outcome.accepted:
                accepted.append(dict(outcome.record))
            else:
                errors.extend(outcome.errors)

        if errors:
            raise UploadValidationError(errors)
        return accepted

    def _log_info(self, message: str, **extra) -> None:
        if has_app_context():
            current_app.logger.info(
                message,
                extra={"importer_upload_id": self.upload_id, **{f"importer_{k}": v for k, v in extra.items()}},
            )

    def _log_outcome(self, outcome: UploadOutcome) -> None:
        if not has_app_context():
            return
        extra = {
            "importer_upload_id": self.upload_id,
            "importer_status": outcome.status.value,
            "importer_total_rows": outcome.total_rows,
            "importer_unique_rows": outcome.unique_rows,
            "importer_duplicate_rows": outcome.duplicate_rows,
            "importer_inserted": outcome.successful_insert_count,
            "importer_failed_batches": len(outcome.batch_failures),
            "importer_dry_run": outcome.dry_run,
        }
        if outcome.rejected:
            current_app.logger.warning(
                "Volunteer upload rejected: %s",
                "; ".join(outcome.rejection_reasons[:5]),
                extra={**extra, "importer_validation_errors": outcome.validation_error_count},
            )
        else:
            current_app.logger.info("Volunteer upload finished with status %s", outcome.status.value, extra=extra)


def run_volunteer_upload(
    buffer: bytes | IO[bytes],
    filename: str,
    *,
    store: Optional[RecordStore] = None,
    dry_run: bool = False,
    batch_size: int | None = None,
    progress: ProgressCallback | None = None,
    cancellation: UploadCancellation | None = None,
    upload_id: str | None = None,
    app=None,
) -> UploadOutcome:
    """
    Run the volunteer upload pipeline with settings taken from the Flask config.

    ``IMPORTER_BATCH_SIZE``, ``IMPORTER_BATCH_CONCURRENCY`` and the
    ``IMPORTER_AGE_MIN``/``IMPORTER_AGE_MAX`` bounds apply unless overridden.
    """

    flask_app = app or current_app
    config = flask_app.config
    schema = get_volunteer_upload_schema(
        age_bounds=(int(config.get("IMPORTER_AGE_MIN", 18)), int(config.get("IMPORTER_AGE_MAX", 100)))
    )
    max_in_flight = int(config.get("IMPORTER_BATCH_CONCURRENCY", 1))
    if store is None and max_in_flight > 1:
        # The SQLAlchemy session is bound to one thread.
        flask_app.logger.warning(
            "IMPORTER_BATCH_CONCURRENCY=%s ignored for the SQLAlchemy record store; writing sequentially.",
            max_in_flight,
        )
        max_in_flight = 1
    pipeline = VolunteerUploadPipeline(
        store,
        schema=schema,
        batch_size=batch_size or int(config.get("IMPORTER_BATCH_SIZE", DEFAULT_BATCH_SIZE)),
        max_in_flight=max_in_flight,
        progress=progress,
        cancellation=cancellation,
        upload_id=upload_id,
    )
    return pipeline.run(buffer, filename, dry_run=dry_run)

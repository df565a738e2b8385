"""Upload outcome assembled from the pipeline stages."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from .batch_writer import BatchFailure, BatchWriteSummary
from .dedupe import DedupeResult


class UploadStatus(str, enum.Enum):
    REJECTED = "rejected"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DRY_RUN = "dry_run"


@dataclass(frozen=True)
class UploadOutcome:
    """
    The single value returned to callers of the upload pipeline.

    A ``rejected`` outcome carries ``rejection_reasons`` and guarantees no
    insert was attempted; every other status carries the write breakdown.
    """

    status: UploadStatus
    total_rows: int = 0
    unique_rows: int = 0
    duplicate_rows: int = 0
    duplicate_ids: Tuple[str, ...] = ()
    successful_insert_count: int = 0
    batch_failures: Tuple[BatchFailure, ...] = ()
    rejection_reasons: Tuple[str, ...] = ()
    validation_error_count: int = 0
    warnings: Tuple[str, ...] = ()
    unmatched_headers: Tuple[str, ...] = ()
    rows_skipped_blank: int = 0
    batches_total: int = 0
    batches_skipped: int = 0
    dry_run: bool = False

    @property
    def rejected(self) -> bool:
        return self.status is UploadStatus.REJECTED

    @property
    def batch_errors(self) -> Tuple[str, ...]:
        return tuple(failure.message for failure in self.batch_failures)

    @property
    def failed_insert_count(self) -> int:
        return sum(len(failure.keys) for failure in self.batch_failures)

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "total_rows": self.total_rows,
            "unique_rows": self.unique_rows,
            "duplicate_rows": self.duplicate_rows,
            "duplicate_ids": list(self.duplicate_ids),
            "successful_insert_count": self.successful_insert_count,
            "failed_insert_count": self.failed_insert_count,
            "batch_errors": list(self.batch_errors),
            "batch_failures": [failure.as_dict() for failure in self.batch_failures],
            "rejection_reasons": list(self.rejection_reasons),
            "validation_error_count": self.validation_error_count,
            "warnings": list(self.warnings),
            "unmatched_headers": list(self.unmatched_headers),
            "rows_skipped_blank": self.rows_skipped_blank,
            "batches_total": self.batches_total,
            "batches_skipped": self.batches_skipped,
            "dry_run": self.dry_run,
        }


def build_rejected_outcome(
    reasons: Sequence[str],
    *,
    total_rows: int = 0,
    validation_error_count: int = 0,
    warnings: Sequence[str] = (),
    unmatched_headers: Sequence[str] = (),
    rows_skipped_blank: int = 0,
    dry_run: bool = False,
) -> UploadOutcome:
    return UploadOutcome(
        status=UploadStatus.REJECTED,
        total_rows=total_rows,
        rejection_reasons=tuple(reasons),
        validation_error_count=validation_error_count,
        warnings=tuple(warnings),
        unmatched_headers=tuple(unmatched_headers),
        rows_skipped_blank=rows_skipped_blank,
        dry_run=dry_run,
    )


def _write_status(summary: BatchWriteSummary) -> UploadStatus:
    if summary.cancelled:
        return UploadStatus.CANCELLED
    failed = len(summary.failures)
    if failed == 0:
        return UploadStatus.SUCCEEDED
    if failed == summary.batches_total:
        return UploadStatus.FAILED
    return UploadStatus.PARTIALLY_FAILED


def build_outcome(
    dedupe: DedupeResult,
    summary: BatchWriteSummary | None,
    *,
    warnings: Sequence[str] = (),
    unmatched_headers: Sequence[str] = (),
    rows_skipped_blank: int = 0,
    dry_run: bool = False,
) -> UploadOutcome:
    """Combine the dedupe counts with the batch writer's result (``None`` for a dry run)."""

    if dry_run or summary is None:
        status = UploadStatus.DRY_RUN
        summary = BatchWriteSummary(batches_total=0, batches_completed=0, successful_insert_count=0)
    else:
        status = _write_status(summary)

    return UploadOutcome(
        status=status,
        total_rows=dedupe.total_rows,
        unique_rows=dedupe.unique_rows,
        duplicate_rows=dedupe.duplicate_rows,
        duplicate_ids=dedupe.duplicate_ids,
        successful_insert_count=summary.successful_insert_count,
        batch_failures=summary.failures,
        warnings=tuple(warnings),
        unmatched_headers=tuple(unmatched_headers),
        rows_skipped_blank=rows_skipped_blank,
        batches_total=summary.batches_total,
        batches_skipped=summary.batches_skipped,
        dry_run=dry_run,
    )

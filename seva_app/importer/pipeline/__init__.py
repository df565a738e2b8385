"""Volunteer upload pipeline stages."""

from .batch_writer import (
    BatchFailure,
    BatchWriter,
    BatchWriteSummary,
    ProgressReporter,
    UploadCancellation,
    partition,
    run_bounded,
)
from .dedupe import DedupeResult, deduplicate
from .headers import HeaderMapping, HeaderResolver
from .normalize import RowNormalizer, coerce_boolean, coerce_date, coerce_integer, coerce_string
from .report import UploadOutcome, UploadStatus, build_outcome, build_rejected_outcome
from .upload import NO_DATA_MESSAGE, VolunteerUploadPipeline, run_volunteer_upload
from .validate import RowValidationOutcome, RowValidator

__all__ = [
    "BatchFailure",
    "BatchWriteSummary",
    "BatchWriter",
    "DedupeResult",
    "HeaderMapping",
    "HeaderResolver",
    "NO_DATA_MESSAGE",
    "ProgressReporter",
    "RowNormalizer",
    "RowValidationOutcome",
    "RowValidator",
    "UploadCancellation",
    "UploadOutcome",
    "UploadStatus",
    "VolunteerUploadPipeline",
    "build_outcome",
    "build_rejected_outcome",
    "coerce_boolean",
    "coerce_date",
    "coerce_integer",
    "coerce_string",
    "deduplicate",
    "partition",
    "run_bounded",
    "run_volunteer_upload",
]

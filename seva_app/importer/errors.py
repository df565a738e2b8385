"""Exception types raised by the volunteer upload pipeline and record store."""

from __future__ import annotations

from typing import Sequence


class UploadError(Exception):
    """Base exception for uploads that must be rejected before any write."""


class SpreadsheetReadError(UploadError):
    """Raised when the uploaded file cannot be decoded into a header and rows."""


class HeaderResolutionError(UploadError):
    """Raised when the header row does not satisfy the upload schema."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(missing)}.")
        if duplicates:
            details.append(
                "Duplicate columns detected for: "
                + ", ".join(duplicates)
                + ". Ensure each field appears only once."
            )
        message = "Header validation failed. " + " ".join(details) if details else "Header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())

    @property
    def reasons(self) -> tuple[str, ...]:
        reasons: list[str] = []
        if self.missing:
            reasons.append(f"Missing required columns: {', '.join(self.missing)}")
        for label in self.duplicates:
            reasons.append(f"Column '{label}' appears more than once")
        return tuple(reasons)


class UploadValidationError(UploadError):
    """Raised when one or more rows fail validation; the upload is rejected as a whole."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__(f"{len(self.errors)} validation error(s) found in the uploaded file.")


class RecordStoreError(Exception):
    """Raised by a record store when a batch insert fails."""


class DuplicateRecordError(RecordStoreError):
    """Raised when a batch violates the store's uniqueness constraint."""

    def __init__(self, message: str, *, keys: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.keys = tuple(keys or ())

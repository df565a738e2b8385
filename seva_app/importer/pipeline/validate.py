"""Row validation and cheap repairs for candidate records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from flask import current_app, has_app_context

from seva_app.importer.contracts import FieldSpec, UploadSchema

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class RowValidationOutcome:
    """Result of validating one row: the repaired record plus errors and warnings."""

    line_number: int
    record: Mapping[str, Any]
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def accepted(self) -> bool:
        return not self.errors


def _log_repair(message: str, *, line_number: int, field: str) -> None:
    if has_app_context():
        current_app.logger.warning(
            message,
            extra={"importer_row": line_number, "importer_field": field},
        )


class RowValidator:
    """
    Apply required-field, fixed-length identifier and range rules.

    The incoming record is never modified; repairs are applied to a copy
    returned on the outcome.
    """

    def __init__(self, schema: UploadSchema) -> None:
        self.schema = schema

    def validate(self, record: Mapping[str, Any], line_number: int) -> RowValidationOutcome:
        repaired = dict(record)
        errors: list[str] = []
        warnings: list[str] = []

        for spec in self.schema.fields:
            if spec.digits is not None and spec.key in repaired:
                self._check_digits(spec, repaired, line_number, errors, warnings)
            if spec.bounds is not None and spec.key in repaired:
                self._check_bounds(spec, repaired, line_number, warnings)

        for spec in self.schema.required_fields:
            value = repaired.get(spec.key)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"Row {line_number}: {spec.label} is required.")

        return RowValidationOutcome(
            line_number=line_number,
            record=repaired,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def _check_digits(
        self,
        spec: FieldSpec,
        record: dict[str, Any],
        line_number: int,
        errors: list[str],
        warnings: list[str],
    ) -> None:
        rule = spec.digits
        original = record[spec.key]
        digits = _NON_DIGITS.sub("", str(original))
        length = len(digits)

        if length == rule.length:
            record[spec.key] = digits
            return

        if length == 0:
            record.pop(spec.key)
            if not spec.required:
                message = f"Row {line_number}: {spec.label} '{original}' has no digits; value dropped."
                warnings.append(message)
                _log_repair(message, line_number=line_number, field=spec.key)
            return

        if length < rule.length:
            if rule.pad_short:
                padded = digits.zfill(rule.length)
                record[spec.key] = padded
                message = f"Row {line_number}: {spec.label} '{original}' zero-padded to '{padded}'."
                warnings.append(message)
                _log_repair(message, line_number=line_number, field=spec.key)
                return
            if rule.drop_single_digit and length == 1:
                record.pop(spec.key)
                message = f"Row {line_number}: {spec.label} '{original}' is a single stray digit; value dropped."
                warnings.append(message)
                _log_repair(message, line_number=line_number, field=spec.key)
                return

        errors.append(f"Row {line_number}: {spec.label} must be {rule.length} digits (got {length}).")

    def _check_bounds(
        self,
        spec: FieldSpec,
        record: dict[str, Any],
        line_number: int,
        warnings: list[str],
    ) -> None:
        low, high = spec.bounds
        value = record[spec.key]
        if low <= value <= high:
            return
        record.pop(spec.key)
        message = f"Row {line_number}: {spec.label} {value} outside {low}-{high}; value cleared."
        warnings.append(message)
        _log_repair(message, line_number=line_number, field=spec.key)

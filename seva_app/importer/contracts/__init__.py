"""Canonical upload contract helpers for the importer pipeline."""

from __future__ import annotations

from .volunteer import (
    DEFAULT_TRUTHY_TOKENS,
    VOLUNTEER_FIELDS,
    VOLUNTEER_UPLOAD_SCHEMA,
    DigitRule,
    FieldSpec,
    FieldType,
    UploadSchema,
    describe_headers,
    get_volunteer_upload_schema,
    normalize_header,
)

__all__ = [
    "DEFAULT_TRUTHY_TOKENS",
    "DigitRule",
    "FieldSpec",
    "FieldType",
    "UploadSchema",
    "VOLUNTEER_FIELDS",
    "VOLUNTEER_UPLOAD_SCHEMA",
    "describe_headers",
    "get_volunteer_upload_schema",
    "normalize_header",
]

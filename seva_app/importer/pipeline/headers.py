"""Header resolution: raw header row -> canonical field keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from flask import current_app, has_app_context

from seva_app.importer.contracts import UploadSchema, describe_headers
from seva_app.importer.errors import HeaderResolutionError


@dataclass(frozen=True)
class HeaderMapping:
    """Immutable mapping of raw column index to canonical field key."""

    columns: Tuple[Tuple[int, str], ...]
    unmatched: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[int, str]:
        return dict(self.columns)

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(key for _, key in self.columns)


def _header_text(value: object | None) -> str:
    if value is None:
        return ""
    return str(value).strip().lstrip("\ufeff").strip()


class HeaderResolver:
    """Resolve spreadsheet headers against an injected ``UploadSchema``."""

    def __init__(self, schema: UploadSchema) -> None:
        self.schema = schema

    def resolve(self, header: Sequence[object | None]) -> HeaderMapping:
        """
        Build the column mapping for ``header``.

        Blank header cells are ignored. Unrecognised headers are collected in
        ``unmatched`` and their columns discarded.

        Raises:
            HeaderResolutionError: a required field has no column, or two
                columns resolve to the same field.
        """

        columns: list[tuple[int, str]] = []
        unmatched: list[str] = []
        seen: set[str] = set()
        duplicates: list[str] = []

        for index, raw in enumerate(header):
            text = _header_text(raw)
            if not text:
                continue
            key = self.schema.resolve(text)
            if key is None:
                unmatched.append(text)
                continue
            if key in seen:
                if key not in duplicates:
                    duplicates.append(key)
                continue
            seen.add(key)
            columns.append((index, key))

        missing = [spec.key for spec in self.schema.required_fields if spec.key not in seen]
        if missing or duplicates:
            raise HeaderResolutionError(
                missing=describe_headers(self.schema, missing),
                duplicates=describe_headers(self.schema, duplicates),
            )

        if unmatched and has_app_context():
            current_app.logger.warning(
                "Ignoring %s unrecognised upload column(s): %s",
                len(unmatched),
                ", ".join(unmatched),
                extra={"importer_unmatched_headers": list(unmatched)},
            )
        return HeaderMapping(columns=tuple(columns), unmatched=tuple(unmatched))

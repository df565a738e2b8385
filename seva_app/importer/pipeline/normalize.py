"""Per-type coercion of raw cells into candidate records."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Sequence

from openpyxl.utils.datetime import from_excel

from seva_app.importer.contracts import FieldType, UploadSchema

from .headers import HeaderMapping

CandidateRecord = Dict[str, Any]

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


def _is_empty(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_string(value: object) -> str | None:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, datetime):
        value = value.date() if value.time() == datetime.min.time() else value
    if isinstance(value, (date, datetime)):
        text = value.isoformat()
    else:
        text = str(value).strip()
    return text or None


def coerce_integer(value: object) -> int | None:
    """Leading base-10 integer of the cell; anything unparsable is ``None``."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    match = _LEADING_INTEGER.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def coerce_boolean(value: object, truthy_tokens: frozenset[str]) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in truthy_tokens


def _from_serial(serial: float) -> date | None:
    if serial < 1:
        return None
    try:
        converted = from_excel(serial)
    except (OverflowError, ValueError, TypeError):
        return None
    if isinstance(converted, datetime):
        return converted.date()
    return None


def coerce_date(value: object) -> date | None:
    """Spreadsheet serial number, native date/datetime, or ISO ``YYYY-MM-DD``."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    text = str(value).strip()
    try:
        return _from_serial(float(text))
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


class RowNormalizer:
    """Turn one raw row into a candidate record using the header mapping."""

    def __init__(self, schema: UploadSchema, mapping: HeaderMapping) -> None:
        self.schema = schema
        self.mapping = mapping
        self._coercers: Dict[FieldType, Callable[[object], Any]] = {
            FieldType.STRING: coerce_string,
            FieldType.INTEGER: coerce_integer,
            FieldType.BOOLEAN: lambda value: coerce_boolean(value, schema.truthy_tokens),
            FieldType.DATE: coerce_date,
        }

    def normalize(self, cells: Sequence[object]) -> CandidateRecord:
        record: CandidateRecord = {}
        for index, key in self.mapping.columns:
            value = cells[index] if index < len(cells) else None
            if _is_empty(value):
                continue
            spec = self.schema.get(key)
            coerced = self._coercers[spec.type](value)
            if coerced is None:
                continue
            record[key] = coerced

        for spec in self.schema.boolean_fields:
            record.setdefault(spec.key, False)
        return record

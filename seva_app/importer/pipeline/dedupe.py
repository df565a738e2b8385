"""In-file de-duplication on the schema's unique key (first row wins)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class DedupeResult:
    records: Tuple[Mapping[str, Any], ...]
    total_rows: int
    duplicate_rows: int
    duplicate_ids: Tuple[str, ...]
    rows_missing_key: int = 0

    @property
    def unique_rows(self) -> int:
        return len(self.records)


def deduplicate(records: Iterable[Mapping[str, Any]], *, unique_key: str) -> DedupeResult:
    """
    Collapse records sharing ``unique_key``, keeping the first occurrence.

    Later occurrences are dropped (never merged) and their keys listed in
    ``duplicate_ids`` in encounter order. Records without the key are
    excluded from both the output and the duplicate count.
    """

    first_seen: dict[str, Mapping[str, Any]] = {}
    duplicate_ids: list[str] = []
    total = 0
    missing = 0

    for record in records:
        total += 1
        key = record.get(unique_key)
        if key is None or key == "":
            missing += 1
            continue
        if key in first_seen:
            duplicate_ids.append(key)
            continue
        first_seen[key] = record

    return DedupeResult(
        records=tuple(first_seen.values()),
        total_rows=total,
        duplicate_rows=len(duplicate_ids),
        duplicate_ids=tuple(duplicate_ids),
        rows_missing_key=missing,
    )

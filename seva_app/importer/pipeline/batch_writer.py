"""
Batched writes to the record store with per-batch failure isolation.

Batches are submitted through ``run_bounded`` with ``max_in_flight=1`` so
inserts happen strictly one after another and progress only moves forward.
A failed batch is recorded and the writer moves on to the next one; there is
no retry and no abort.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from flask import current_app, has_app_context

from config.monitoring import ImporterMonitoring
from seva_app.importer.errors import DuplicateRecordError, RecordStoreError
from seva_app.importer.store import RecordStore

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int], None]

DEFAULT_BATCH_SIZE = 50


def run_bounded(
    items: Iterable[T],
    handler: Callable[[T], R],
    *,
    max_in_flight: int = 1,
    should_continue: Callable[[], bool] | None = None,
) -> List[R]:
    """
    Apply ``handler`` to ``items`` with at most ``max_in_flight`` calls running.

    Results are returned in input order. ``should_continue`` is consulted
    before each item is submitted; once it returns False no further items
    start and only the results gathered so far are returned.
    """

    if max_in_flight < 1:
        raise ValueError("max_in_flight must be at least 1.")

    results: List[R] = []
    if max_in_flight == 1:
        for item in items:
            if should_continue is not None and not should_continue():
                break
            results.append(handler(item))
        return results

    pending = list(items)
    with ThreadPoolExecutor(max_workers=max_in_flight) as executor:
        for start in range(0, len(pending), max_in_flight):
            if should_continue is not None and not should_continue():
                break
            window = pending[start : start + max_in_flight]
            futures = [executor.submit(handler, item) for item in window]
            results.extend(future.result() for future in futures)
    return results


class UploadCancellation:
    """Cancellation token honoured between batches."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressReporter:
    """Forward integer percentages to a callback, never letting them decrease."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._emitted = False
        self.last = 0

    def emit(self, percent: int) -> None:
        percent = max(self.last, min(100, int(percent)))
        if self._emitted and percent == self.last:
            return
        self._emitted = True
        self.last = percent
        if self._callback is not None:
            self._callback(percent)


@dataclass(frozen=True)
class BatchFailure:
    batch_number: int
    kind: str
    message: str
    keys: Tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "batch_number": self.batch_number,
            "kind": self.kind,
            "message": self.message,
            "keys": list(self.keys),
        }


@dataclass(frozen=True)
class BatchResult:
    batch_number: int
    inserted_count: int = 0
    inserted_keys: Tuple[str, ...] = ()
    failure: Optional[BatchFailure] = None


@dataclass(frozen=True)
class BatchWriteSummary:
    batches_total: int
    batches_completed: int
    successful_insert_count: int
    inserted_keys: Tuple[str, ...] = ()
    failures: Tuple[BatchFailure, ...] = field(default_factory=tuple)

    @property
    def batches_skipped(self) -> int:
        return self.batches_total - self.batches_completed

    @property
    def cancelled(self) -> bool:
        return self.batches_skipped > 0

    @property
    def batch_errors(self) -> Tuple[str, ...]:
        return tuple(failure.message for failure in self.failures)


def partition(records: Sequence[T], batch_size: int) -> List[Sequence[T]]:
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1.")
    return [records[start : start + batch_size] for start in range(0, len(records), batch_size)]


class BatchWriter:
    """Submit records to a ``RecordStore`` in fixed-size batches."""

    def __init__(
        self,
        store: RecordStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_in_flight: int = 1,
        progress: ProgressReporter | None = None,
        cancellation: UploadCancellation | None = None,
        base_offset: int = 50,
        progress_range: int = 50,
        unique_key: str = "sai_connect_id",
        upload_id: str | None = None,
    ) -> None:
        self.store = store
        self.batch_size = batch_size
        self.max_in_flight = max_in_flight
        self.progress = progress or ProgressReporter()
        self.cancellation = cancellation
        self.base_offset = base_offset
        self.progress_range = progress_range
        self.unique_key = unique_key
        self.upload_id = upload_id
        self._completed = 0
        self._total = 0
        self._lock = threading.Lock()

    def write(self, records: Sequence[Mapping[str, Any]]) -> BatchWriteSummary:
        batches = partition(list(records), self.batch_size)
        self._completed = 0
        self._total = len(batches)

        results = run_bounded(
            list(enumerate(batches, start=1)),
            self._write_batch,
            max_in_flight=self.max_in_flight,
            should_continue=self._should_continue,
        )

        failures = tuple(result.failure for result in results if result.failure is not None)
        inserted_keys: list[str] = []
        for result in results:
            inserted_keys.extend(result.inserted_keys)
        summary = BatchWriteSummary(
            batches_total=len(batches),
            batches_completed=len(results),
            successful_insert_count=sum(result.inserted_count for result in results),
            inserted_keys=tuple(inserted_keys),
            failures=failures,
        )
        if summary.cancelled and has_app_context():
            current_app.logger.warning(
                "Volunteer upload cancelled; %s of %s batch(es) not submitted",
                summary.batches_skipped,
                summary.batches_total,
                extra={"importer_upload_id": self.upload_id, "importer_batches_skipped": summary.batches_skipped},
            )
        return summary

    def _should_continue(self) -> bool:
        return self.cancellation is None or not self.cancellation.cancelled

    def _write_batch(self, numbered: Tuple[int, Sequence[Mapping[str, Any]]]) -> BatchResult:
        batch_number, batch = numbered
        keys = tuple(str(record.get(self.unique_key)) for record in batch)
        started = time.perf_counter()
        try:
            inserted = self.store.insert_many(batch)
        except DuplicateRecordError as exc:
            result = self._failed(batch_number, "duplicate", f"Batch {batch_number}: {exc}", exc.keys or keys)
            status = "duplicate"
        except RecordStoreError as exc:
            result = self._failed(batch_number, "store", f"Batch {batch_number}: {exc}", keys)
            status = "failure"
        except Exception as exc:  # pragma: no cover - unexpected store failure
            if has_app_context():
                current_app.logger.exception(
                    "Unexpected error writing volunteer batch %s",
                    batch_number,
                    extra={"importer_upload_id": self.upload_id, "importer_batch": batch_number},
                )
            result = self._failed(batch_number, "store", f"Batch {batch_number}: {exc}", keys)
            status = "failure"
        else:
            result = BatchResult(
                batch_number=batch_number,
                inserted_count=inserted.inserted_count,
                inserted_keys=tuple(inserted.inserted_keys),
            )
            status = "success"
            if has_app_context():
                current_app.logger.info(
                    "Volunteer batch %s/%s inserted %s record(s)",
                    batch_number,
                    self._total,
                    inserted.inserted_count,
                    extra={"importer_upload_id": self.upload_id, "importer_batch": batch_number},
                )

        ImporterMonitoring.record_batch(status=status, duration_seconds=time.perf_counter() - started)
        with self._lock:
            self._completed += 1
            self.progress.emit(self.base_offset + (self._completed * self.progress_range) // self._total)
        return result

    def _failed(self, batch_number: int, kind: str, message: str, keys: Sequence[str]) -> BatchResult:
        if has_app_context():
            current_app.logger.error(
                "Volunteer batch %s failed (%s): %s",
                batch_number,
                kind,
                message,
                extra={
                    "importer_upload_id": self.upload_id,
                    "importer_batch": batch_number,
                    "importer_batch_failure": kind,
                },
            )
        return BatchResult(
            batch_number=batch_number,
            failure=BatchFailure(batch_number=batch_number, kind=kind, message=message, keys=tuple(keys)),
        )

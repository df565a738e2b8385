from __future__ import annotations

from typing import Any, Mapping, Sequence

import pytest

from seva_app.importer.contracts import get_volunteer_upload_schema
from seva_app.importer.errors import DuplicateRecordError, RecordStoreError
from seva_app.importer.store import InsertResult


class RecordingStore:
    """In-memory record store that records every batch and can fail on demand."""

    def __init__(self, *, fail_batches: Mapping[int, Exception] | None = None) -> None:
        self.calls: list[list[dict[str, Any]]] = []
        self.fail_batches = dict(fail_batches or {})

    def insert_many(self, records: Sequence[Mapping[str, Any]]) -> InsertResult:
        self.calls.append([dict(record) for record in records])
        error = self.fail_batches.get(len(self.calls))
        if error is not None:
            raise error
        keys = tuple(record["sai_connect_id"] for record in records)
        return InsertResult(inserted_count=len(records), inserted_keys=keys)

    @property
    def inserted(self) -> list[dict[str, Any]]:
        return [record for batch in self.calls for record in batch]


@pytest.fixture
def schema():
    return get_volunteer_upload_schema()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def store_factory():
    def _factory(fail_batches: Mapping[int, Exception] | None = None) -> RecordingStore:
        return RecordingStore(fail_batches=fail_batches)

    return _factory


@pytest.fixture
def store_error():
    return RecordStoreError("connection reset")


@pytest.fixture
def duplicate_error():
    return DuplicateRecordError("One or more SAI Connect IDs in this batch already exist.", keys=("000001",))

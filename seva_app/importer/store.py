"""Record store collaborators used by the batch writer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from seva_app.models import Volunteer, db

from .errors import DuplicateRecordError, RecordStoreError


@dataclass(frozen=True)
class InsertResult:
    inserted_count: int
    inserted_keys: Tuple[str, ...] = ()


class RecordStore(Protocol):
    """Persistence boundary: insert a batch of records or raise ``RecordStoreError``."""

    def insert_many(self, records: Sequence[Mapping[str, Any]]) -> InsertResult:  # pragma: no cover - protocol
        ...


def _is_unique_violation(exc: IntegrityError) -> bool:
    detail = str(getattr(exc, "orig", None) or exc).lower()
    return "unique" in detail or "duplicate key" in detail


class SQLAlchemyRecordStore:
    """
    Insert volunteers through the Flask-SQLAlchemy session.

    Every batch is committed on its own, so a failing batch is rolled back
    without touching batches committed before it.
    """

    def __init__(self, session=None, *, model=Volunteer, unique_key: str = "sai_connect_id") -> None:
        self._session = session
        self.model = model
        self.unique_key = unique_key

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def insert_many(self, records: Sequence[Mapping[str, Any]]) -> InsertResult:
        if not records:
            return InsertResult(inserted_count=0)

        keys = tuple(str(record.get(self.unique_key)) for record in records)
        session = self.session
        try:
            session.add_all([self.model(**dict(record)) for record in records])
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if _is_unique_violation(exc):
                raise DuplicateRecordError(
                    "One or more SAI Connect IDs in this batch already exist.",
                    keys=keys,
                ) from exc
            raise RecordStoreError(f"Integrity error while inserting batch: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise RecordStoreError(f"Database error while inserting batch: {exc}") from exc

        return InsertResult(inserted_count=len(records), inserted_keys=keys)

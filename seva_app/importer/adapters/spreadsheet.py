"""Spreadsheet reader for volunteer uploads.

Decodes an in-memory ``.xlsx``/``.xlsm`` workbook (openpyxl) or a ``.csv``
file into a header row plus positionally aligned raw rows. No typing or
header matching happens here; cells are handed on exactly as the file
library produced them.
"""

from __future__ import annotations

import csv
import io
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable, Sequence, Tuple
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from seva_app.importer.errors import SpreadsheetReadError

WORKBOOK_EXTENSIONS: tuple[str, ...] = ("xlsx", "xlsm")
CSV_EXTENSIONS: tuple[str, ...] = ("csv",)
SUPPORTED_EXTENSIONS: tuple[str, ...] = WORKBOOK_EXTENSIONS + CSV_EXTENSIONS

RawCell = object

# ElementTree and lxml parse errors both subclass SyntaxError
WORKBOOK_READ_ERRORS: tuple[type[BaseException], ...] = (
    SyntaxError,
    BadZipFile,
    zlib.error,
    EOFError,
    KeyError,
    ValueError,
    OSError,
)


@dataclass(frozen=True)
class RawRow:
    """A data row and its 1-based line number in the source sheet."""

    line_number: int
    cells: Tuple[RawCell, ...]


@dataclass(frozen=True)
class RawSheet:
    header: Tuple[RawCell, ...]
    rows: Tuple[RawRow, ...]
    rows_skipped_blank: int = 0

    @property
    def total_rows(self) -> int:
        return len(self.rows)


def _extension(filename: str) -> str:
    return Path(filename or "").suffix.lstrip(".").lower()


def _cell_is_blank(value: RawCell) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _row_is_blank(cells: Sequence[RawCell]) -> bool:
    return all(_cell_is_blank(value) for value in cells)


def _as_bytes(buffer: bytes | bytearray | IO[bytes]) -> bytes:
    if isinstance(buffer, (bytes, bytearray)):
        return bytes(buffer)
    if hasattr(buffer, "seek"):
        buffer.seek(0)
    data = buffer.read()
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def _iter_workbook_rows(data: bytes) -> Iterable[Tuple[RawCell, ...]]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, *WORKBOOK_READ_ERRORS) as exc:
        raise SpreadsheetReadError(f"Unable to read workbook: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise SpreadsheetReadError("The uploaded workbook has no worksheets.")
        sheet = workbook.worksheets[0]
        # read_only sheets parse their XML lazily, during iteration
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    except WORKBOOK_READ_ERRORS as exc:
        raise SpreadsheetReadError(f"Unable to read workbook: {exc}") from exc
    finally:
        workbook.close()


def _iter_csv_rows(data: bytes) -> Iterable[Tuple[RawCell, ...]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SpreadsheetReadError("CSV files must be UTF-8 encoded.") from exc
    try:
        return [tuple(row) for row in csv.reader(io.StringIO(text, newline=""))]
    except csv.Error as exc:
        raise SpreadsheetReadError(f"Unable to parse CSV: {exc}") from exc


def read_spreadsheet(buffer: bytes | bytearray | IO[bytes], filename: str) -> RawSheet:
    """
    Decode an uploaded spreadsheet into a ``RawSheet``.

    Row 1 of the first worksheet is the header. Blank rows are skipped and
    counted; rows shorter than the header are padded with ``None``.

    Raises:
        SpreadsheetReadError: unsupported extension, unreadable file, or a
            sheet without a header row.
    """

    extension = _extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        allowed = ", ".join(f".{ext}" for ext in SUPPORTED_EXTENSIONS)
        raise SpreadsheetReadError(f"Unsupported file type '{filename}'; expected one of {allowed}.")

    data = _as_bytes(buffer)
    if not data:
        raise SpreadsheetReadError("The uploaded file is empty.")

    if extension in WORKBOOK_EXTENSIONS:
        raw_rows = _iter_workbook_rows(data)
    else:
        raw_rows = _iter_csv_rows(data)

    iterator = iter(raw_rows)
    header = next(iterator, None)
    if header is None or _row_is_blank(header):
        raise SpreadsheetReadError("The uploaded file has no header row.")

    width = len(header)
    rows: list[RawRow] = []
    skipped = 0
    for line_number, cells in enumerate(iterator, start=2):
        if _row_is_blank(cells):
            skipped += 1
            continue
        if len(cells) < width:
            cells = tuple(cells) + (None,) * (width - len(cells))
        rows.append(RawRow(line_number=line_number, cells=tuple(cells)))

    return RawSheet(header=tuple(header), rows=tuple(rows), rows_skipped_blank=skipped)

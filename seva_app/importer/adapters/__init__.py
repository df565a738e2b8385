"""File adapters that turn uploaded spreadsheets into raw rows."""

from __future__ import annotations

from .spreadsheet import SUPPORTED_EXTENSIONS, RawRow, RawSheet, read_spreadsheet

__all__ = ["RawRow", "RawSheet", "SUPPORTED_EXTENSIONS", "read_spreadsheet"]

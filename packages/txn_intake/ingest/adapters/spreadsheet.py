"""Adapter for reading the first sheet of an uploaded spreadsheet as raw rows.

Workbooks (``.xlsx``/``.xlsm``) are read with openpyxl in read-only mode with
``data_only=True`` so cells arrive as raw values: native ``datetime`` for
date-formatted cells, ``int``/``float`` for numbers and ``str`` for text.
CSV files are read with the stdlib :mod:`csv` module and yield strings.

Failure mode
------------
Any unreadable or corrupt file raises :class:`SpreadsheetError` with the path
and the underlying cause. Callers report it once for the whole batch.
"""

from __future__ import annotations

import csv
import zipfile
from os import PathLike
from pathlib import Path
from typing import Any, TypeAlias

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

Row: TypeAlias = tuple[Any, ...]

_WORKBOOK_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}


class SpreadsheetError(Exception):
    """Raised when a spreadsheet cannot be opened or parsed."""


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _trim(row: tuple[Any, ...]) -> Row:
    # Drop trailing empty cells so ragged rows compare cleanly.
    end = len(row)
    while end and _is_empty(row[end - 1]):
        end -= 1
    return tuple(row[:end])


def _read_workbook(path: Path) -> list[Row]:
    # openpyxl rejects unknown extensions by name; a file handle bypasses that.
    try:
        with path.open("rb") as fh:
            wb = load_workbook(fh, read_only=True, data_only=True)
            try:
                if not wb.worksheets:
                    raise SpreadsheetError(f"workbook {path.name!r} has no sheets")
                ws = wb.worksheets[0]
                return [_trim(tuple(r)) for r in ws.iter_rows(values_only=True)]
            finally:
                wb.close()
    except (
        InvalidFileException,
        zipfile.BadZipFile,
        KeyError,
        ValueError,
        SyntaxError,
        OSError,
    ) as exc:
        raise SpreadsheetError(f"cannot read workbook {path.name!r}: {exc}") from exc


def _read_csv(path: Path) -> list[Row]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            return [_trim(tuple(r)) for r in csv.reader(f)]
    except (UnicodeDecodeError, csv.Error, OSError) as exc:
        raise SpreadsheetError(f"cannot read CSV {path.name!r}: {exc}") from exc


def read_first_sheet(path: str | PathLike[str]) -> list[Row]:
    """Return every row of the first sheet, in order, as tuples of raw cells."""

    p = Path(path)
    if not p.is_file():
        raise SpreadsheetError(f"file not found: {p}")
    if p.suffix.lower() == ".csv":
        return _read_csv(p)
    if p.suffix.lower() in _WORKBOOK_SUFFIXES:
        return _read_workbook(p)
    # Unknown extension (e.g. temp upload names): sniff the zip container.
    if zipfile.is_zipfile(p):
        return _read_workbook(p)
    return _read_csv(p)


__all__ = ["Row", "SpreadsheetError", "read_first_sheet"]

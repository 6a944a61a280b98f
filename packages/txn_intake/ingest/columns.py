"""Header-driven column mapping for spreadsheets with a free-text header row.

Headers are matched case-insensitively and without diacritics, so ``"Số tiền"``,
``"SO TIEN"`` and ``"Amount"`` all resolve to the ``amount`` slot. Unrelated
extra columns are ignored and column order does not matter.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Sequence
from datetime import date
from typing import Any

from ..amounts import ZERO, parse_amount
from ..currency import classify_currency
from ..dates import resolve_date
from ..models import ColumnMap, RawFields, TxType

# Resolution order matters: a column claimed by an earlier field is not
# offered to later ones (e.g. "Loại tiền" is a currency, not a type).
FIELD_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("date", (r"\bdate\b", r"\bngay\b", r"\bthoi gian\b", r"\bday\b")),
    ("amount", (r"\bamount\b", r"\bso tien\b", r"\bthanh tien\b", r"\bgia tri\b", r"\bvalue\b")),
    ("currency", (r"\bcurrency\b", r"\btien te\b", r"\bloai tien\b", r"\bccy\b", r"\bdon vi\b")),
    ("type", (r"\btype\b", r"\bloai\b", r"\bthu ?/ ?chi\b", r"\bthu chi\b", r"\bkind\b")),
    (
        "subject",
        (r"\bsubject\b", r"\bdoi tuong\b", r"\bpayee\b", r"\bmerchant\b", r"\bdescription\b",
         r"\bmo ta\b", r"\bhang muc\b", r"\bten\b"),
    ),
    ("note", (r"\bnote\b", r"\bghi chu\b", r"\bnoi dung\b", r"\bmemo\b", r"\bdien giai\b")),
    ("created_by", (r"\bcreated ?by\b", r"\bnguoi tao\b", r"\bnguoi nhap\b", r"\bauthor\b")),
)

_COMPILED: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = tuple(
    (name, tuple(re.compile(p) for p in patterns)) for name, patterns in FIELD_PATTERNS
)


def fold_header(value: Any) -> str:
    """Lower-case, strip diacritics (``đ`` -> ``d``) and collapse whitespace."""

    s = str(value or "").strip().lower().replace("đ", "d")
    s = unicodedata.normalize("NFD", s)
    s = "".join(ch for ch in s if unicodedata.category(ch) != "Mn")
    s = re.sub(r"[_\s]+", " ", s)
    return s.strip()


def build_column_map(header_row: Sequence[Any]) -> ColumnMap:
    """Map canonical fields to the first matching header column."""

    folded = [fold_header(h) for h in header_row]
    claimed: set[int] = set()
    found: dict[str, int] = {}
    for name, patterns in _COMPILED:
        for idx, header in enumerate(folded):
            if idx in claimed or not header:
                continue
            if any(p.search(header) for p in patterns):
                found[name] = idx
                claimed.add(idx)
                break
    return ColumnMap(**found)


def find_header(rows: Sequence[Sequence[Any]], *, max_scan: int = 10) -> int | None:
    """Return the index of the first usable header row within ``max_scan`` rows."""

    for idx, row in enumerate(rows[:max_scan]):
        if build_column_map(row).usable:
            return idx
    return None


def _cell(row: Sequence[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else value


def _str_cell(row: Sequence[Any], idx: int | None) -> str:
    return str(_cell(row, idx)).strip()


def map_row(row: Sequence[Any], column_map: ColumnMap, *, today: date) -> RawFields:
    """Read one data row through ``column_map``.

    Date and amount are resolved inline; missing ``type`` defaults to Expense
    and missing ``currency`` to VND.
    """

    return RawFields(
        date=resolve_date(_cell(row, column_map.date), today),
        type=_str_cell(row, column_map.type) or TxType.EXPENSE.value,
        subject=_str_cell(row, column_map.subject),
        amount=parse_amount(_cell(row, column_map.amount)),
        currency=classify_currency(_str_cell(row, column_map.currency)).value,
        note=_str_cell(row, column_map.note),
        created_by=_str_cell(row, column_map.created_by),
    )


def map_rows(
    rows: Sequence[Sequence[Any]],
    column_map: ColumnMap,
    *,
    today: date,
    first_row_number: int = 2,
) -> tuple[list[tuple[int, RawFields]], list[tuple[int, str]]]:
    """Map data rows, collecting rejections instead of stopping.

    Returns ``(mapped, errors)`` where ``mapped`` pairs the 1-based sheet row
    number with its fields and ``errors`` pairs the row number with a reason.
    Entirely empty rows are ignored without an error.
    """

    mapped: list[tuple[int, RawFields]] = []
    errors: list[tuple[int, str]] = []
    for offset, row in enumerate(rows):
        row_number = first_row_number + offset
        if all(str(c if c is not None else "").strip() == "" for c in row):
            continue
        fields = map_row(row, column_map, today=today)
        if not fields.subject:
            errors.append((row_number, f"Row {row_number}: missing subject"))
            continue
        if fields.amount <= ZERO:
            errors.append((row_number, f"Row {row_number}: amount must be positive"))
            continue
        mapped.append((row_number, fields))
    return mapped, errors


__all__ = [
    "FIELD_PATTERNS",
    "build_column_map",
    "find_header",
    "fold_header",
    "map_row",
    "map_rows",
]

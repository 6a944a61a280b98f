"""Schema-free classification of spreadsheet rows.

Used for sheets without a reliable header. Each row is classified on its own
(no neighbour context) into either a :class:`ClassifiedRow` or a
:class:`Skipped` reason, which makes the classifier total, deterministic and
safe to run in parallel.

The amount threshold and the personnel vocabulary are tuned for VND-scale
bookkeeping in Vietnamese/English sheets; both come from
:class:`~txn_intake.config.IntakeConfig`.
"""

from __future__ import annotations

import functools
import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from ..amounts import parse_amount
from ..config import DEFAULT_AMOUNT_THRESHOLD, DEFAULT_PERSONNEL_KEYWORDS, IntakeConfig
from ..models import ClassifiedRow, Skipped, SkippedRow, StagedRow, StagedSheet

SKIP_SPARSE = "blank or sparse row"
SKIP_NO_AMOUNT = "no amount found"
SKIP_NO_TEXT = "no descriptive text"
SKIP_HEADER = "header or subtotal row"

HEADER_TOKENS: tuple[str, ...] = (
    "total",
    "subtotal",
    "grand total",
    "sum",
    "tổng",
    "tong cong",
    "cộng",
    "hạng mục",
    "stt",
    "no.",
)

NOTE_SEPARATOR = " | "

_CURRENCY_GLYPHS = re.compile(r"(?i)vn[dđ]|usd|[₫$€£¥đ]|\s")
_NUMERIC_TOKEN = re.compile(r"^[\d.,'’]*\d[\d.,'’]*$")
# Dotted, slashed or dashed day-month-year text is a date, never an amount.
_DATE_TOKEN = re.compile(r"^\d{1,2}([./-])\d{1,2}\1\d{2,4}$")
_SEQUENCE_NO = re.compile(r"^\d{1,3}$")
_CODE_OR_PERCENT = re.compile(r"^[\d\W_]+%?$")


@dataclass(frozen=True, slots=True)
class HeuristicRules:
    amount_threshold: Decimal = DEFAULT_AMOUNT_THRESHOLD
    personnel_keywords: tuple[str, ...] = DEFAULT_PERSONNEL_KEYWORDS
    header_tokens: tuple[str, ...] = HEADER_TOKENS
    note_separator: str = NOTE_SEPARATOR

    @classmethod
    def from_config(cls, config: IntakeConfig) -> HeuristicRules:
        return cls(
            amount_threshold=config.amount_threshold,
            personnel_keywords=config.personnel_keywords,
        )


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _fold(text: str) -> str:
    return unicodedata.normalize("NFC", text).casefold()


def _numeric_value(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | Decimal):
        return Decimal(value)
    if isinstance(value, float):
        d = Decimal(str(value))
        return d if d.is_finite() else None
    if isinstance(value, str):
        stripped = _CURRENCY_GLYPHS.sub("", value)
        if _NUMERIC_TOKEN.match(stripped) and not _DATE_TOKEN.match(stripped):
            return parse_amount(stripped)
    return None


@functools.lru_cache(maxsize=8)
def _header_pattern(tokens: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(_fold(t)) for t in tokens)
    return re.compile(rf"^(?:{alternatives})(?!\w)")


def classify_row(
    cells: Sequence[Any], rules: HeuristicRules | None = None
) -> ClassifiedRow | Skipped:
    """Infer amount, subject and note from a headerless row."""

    rules = rules or HeuristicRules()
    texts = [_cell_text(c) for c in cells]

    if sum(1 for t in texts if t) < 2:
        return Skipped(SKIP_SPARSE)

    amount: Decimal | None = None
    amount_col = -1
    for idx, cell in enumerate(cells):
        value = _numeric_value(cell)
        if value is None or value < rules.amount_threshold:
            continue
        if amount is None or value > amount:
            amount, amount_col = value, idx
    if amount is None:
        return Skipped(SKIP_NO_AMOUNT)

    pool: list[str] = []
    for idx, text in enumerate(texts):
        if idx == amount_col or not text:
            continue
        if _SEQUENCE_NO.match(text) or _CODE_OR_PERCENT.match(text):
            continue
        pool.append(text)
    if not pool:
        return Skipped(SKIP_NO_TEXT)

    subject = pool[0]
    if _header_pattern(tuple(rules.header_tokens)).match(_fold(subject.strip())):
        return Skipped(SKIP_HEADER)

    haystack = _fold(" ".join(texts))
    is_personnel = any(_fold(k) in haystack for k in rules.personnel_keywords)

    return ClassifiedRow(
        subject=subject,
        note=rules.note_separator.join(pool[1:]),
        amount=amount.quantize(Decimal("0.01")),
        is_personnel=is_personnel,
        column=amount_col,
    )


def stage_rows(
    rows: Sequence[Sequence[Any]],
    rules: HeuristicRules | None = None,
    *,
    first_row_number: int = 1,
) -> StagedSheet:
    """Classify every row for user review before anything is imported."""

    staged = StagedSheet()
    for offset, row in enumerate(rows):
        row_number = first_row_number + offset
        outcome = classify_row(row, rules)
        if isinstance(outcome, Skipped):
            staged.skipped.append(SkippedRow(row_number, outcome.reason))
        else:
            staged.rows.append(StagedRow(row_number, outcome))
    return staged


__all__ = [
    "HEADER_TOKENS",
    "SKIP_HEADER",
    "SKIP_NO_AMOUNT",
    "SKIP_NO_TEXT",
    "SKIP_SPARSE",
    "HeuristicRules",
    "classify_row",
    "stage_rows",
]

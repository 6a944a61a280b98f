"""Normalization of :class:`RawFields` into canonical :class:`Transaction` records.

:func:`normalize` is a pure function of its input and an explicit, immutable
:class:`NormalizeContext` (processing date, conversion rate, defaults and the
id allocator). Expected rejections are returned as :class:`Rejected` values.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from .amounts import ZERO, is_zero_token, parse_amount
from .config import IntakeConfig
from .currency import classify_currency, to_base
from .dates import correct_year, resolve_date
from .models import Currency, RawFields, Rejected, Transaction, TxType

# Substrings of the raw ``type`` token that mean money came in.
INCOME_TOKENS: tuple[str, ...] = ("income", "receiv", "thu", "nhận")

SOURCE_MANUAL = "manual"
SOURCE_SPREADSHEET = "spreadsheet"
SOURCE_AI_SCAN = "ai-scan"


def _clock_ms() -> int:
    return time.time_ns() // 1_000_000


class IdSequence:
    """Monotonic transaction id allocator.

    Ids start from the wall-clock millisecond but never repeat or go
    backwards: each id is ``max(clock_ms, last + 1)``. Safe to share across
    threads.
    """

    def __init__(self, clock: Callable[[], int] = _clock_ms, *, start: int | None = None) -> None:
        self._clock = clock
        self._last = (start - 1) if start is not None else 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._last = max(self._clock(), self._last + 1)
            return self._last


@dataclass(frozen=True, slots=True)
class NormalizeContext:
    current_date: date
    usd_rate: Decimal = Decimal("25500")
    created_by_default: str = "unknown"
    source_tag: str = SOURCE_MANUAL
    is_ai_extracted: bool = False
    # Trusted manual entry may legitimately record a zero amount.
    allow_zero_amount: bool = False
    convert_to_base: bool = False
    ids: IdSequence = field(default_factory=IdSequence, compare=False)


def make_context(
    config: IntakeConfig,
    *,
    source: str = SOURCE_MANUAL,
    today: date | None = None,
    created_by: str | None = None,
    convert_to_base: bool = False,
    ids: IdSequence | None = None,
) -> NormalizeContext:
    """Build a context for one ingestion channel."""

    return NormalizeContext(
        current_date=today or date.today(),
        usd_rate=config.usd_rate,
        created_by_default=(created_by or "").strip() or "unknown",
        source_tag=source,
        is_ai_extracted=source == SOURCE_AI_SCAN,
        allow_zero_amount=source == SOURCE_MANUAL,
        convert_to_base=convert_to_base,
        ids=ids or IdSequence(),
    )


def infer_type(raw: Any) -> TxType:
    text = str(raw or "").casefold()
    if any(tok in text for tok in INCOME_TOKENS):
        return TxType.INCOME
    return TxType.EXPENSE


def _text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


def normalize(
    raw: RawFields, ctx: NormalizeContext, *, tx_id: int | None = None
) -> Transaction | Rejected:
    """Normalize one raw record.

    Rejections: empty subject, non-positive amount (an explicit zero is kept
    when ``ctx.allow_zero_amount``). A canonical transaction recast through
    :meth:`Transaction.to_raw_fields` normalizes back to itself.
    """

    subject = _text(raw.subject)
    if not subject:
        return Rejected("missing subject")

    amount = parse_amount(raw.amount)
    if amount <= ZERO:
        if not (ctx.allow_zero_amount and is_zero_token(raw.amount)):
            return Rejected("amount must be positive")

    iso = resolve_date(raw.date, ctx.current_date)
    if ctx.is_ai_extracted:
        iso = correct_year(iso, ctx.current_date.year)

    currency = classify_currency(raw.currency)
    original_amount: Decimal | None = None
    original_currency: Currency | None = None
    rate_used: Decimal | None = None
    if currency is Currency.USD and ctx.convert_to_base:
        base = to_base(amount, currency, ctx.usd_rate)
        amount = base.amount
        currency = Currency.VND
        original_amount = base.original_amount
        original_currency = base.original_currency
        rate_used = base.rate_used
    elif currency is Currency.VND and raw.original_currency is not None:
        # Already converted; carry provenance through unchanged.
        original_amount = parse_amount(raw.original_amount)
        original_currency = classify_currency(raw.original_currency)
        rate_used = Decimal(str(raw.rate_used)) if raw.rate_used is not None else None

    return Transaction(
        id=tx_id if tx_id is not None else ctx.ids.next(),
        date=iso,
        type=infer_type(raw.type),
        subject=subject,
        amount=amount,
        currency=currency,
        note=_text(raw.note),
        created_by=_text(raw.created_by) or ctx.created_by_default,
        source=ctx.source_tag,
        original_amount=original_amount,
        original_currency=original_currency,
        rate_used=rate_used,
    )


__all__ = [
    "INCOME_TOKENS",
    "SOURCE_AI_SCAN",
    "SOURCE_MANUAL",
    "SOURCE_SPREADSHEET",
    "IdSequence",
    "NormalizeContext",
    "infer_type",
    "make_context",
    "normalize",
]

"""Amount parsing for locale-mixed numeric tokens.

``parse_amount`` accepts native numbers or strings such as ``"1.234.000"``,
``"1,234,567"``, ``"24.99"`` or ``"1.234,99"`` and returns a non-negative
``Decimal`` with two fractional digits. Unparseable input resolves to zero;
callers decide whether zero means "amount not found".
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

_NON_NUMERIC = re.compile(r"[^0-9.,]")
# A trailing group of 1-2 digits after the last separator is a decimal part.
_DECIMAL_TAIL = re.compile(r"^(?P<head>.*?)(?P<sep>[.,])(?P<frac>\d{1,2})$")


def _quantize(d: Decimal) -> Decimal:
    return abs(d).quantize(_CENTS, rounding=ROUND_HALF_UP)


def parse_amount(raw: Any) -> Decimal:
    """Return ``raw`` as a non-negative two-decimal ``Decimal``.

    Native numbers are used as-is. Strings are reduced to digits and the two
    separator characters; the last separator is a decimal point only when it
    is followed by 1-2 digits and does not appear earlier in the token.
    """

    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, int):
        return _quantize(Decimal(raw))
    if isinstance(raw, float | Decimal):
        d = Decimal(str(raw))
        if not d.is_finite():
            return ZERO
        return _quantize(d)

    s = _NON_NUMERIC.sub("", str(raw))
    if not any(ch.isdigit() for ch in s):
        return ZERO

    m = _DECIMAL_TAIL.match(s)
    if m and m.group("sep") not in m.group("head"):
        whole = re.sub(r"[.,]", "", m.group("head")) or "0"
        text = f"{whole}.{m.group('frac')}"
    else:
        text = re.sub(r"[.,]", "", s)

    try:
        return _quantize(Decimal(text))
    except InvalidOperation:
        return ZERO


def is_zero_token(raw: Any) -> bool:
    """Return ``True`` when ``raw`` spells a number and that number is zero.

    Distinguishes a deliberate ``0`` or ``"0,00"`` from text such as ``"abc"``
    that :func:`parse_amount` also resolves to zero.
    """

    if raw is None or isinstance(raw, bool):
        return False
    if isinstance(raw, int | float | Decimal):
        return parse_amount(raw) == ZERO and Decimal(str(raw)).is_finite()
    digits = [ch for ch in _NON_NUMERIC.sub("", str(raw)) if ch.isdigit()]
    return bool(digits) and all(ch == "0" for ch in digits)


__all__ = ["ZERO", "is_zero_token", "parse_amount"]

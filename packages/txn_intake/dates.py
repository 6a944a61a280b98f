"""Date resolution into canonical ``YYYY-MM-DD`` strings.

Precedence (first match wins):

1. native ``date``/``datetime`` values (no timezone conversion);
2. ISO ``YYYY-MM-DD`` strings, optionally followed by a time part;
3. ``D/M/YYYY`` or ``D-M-YYYY`` strings (day first);
4. spreadsheet serial day numbers (5 digits, epoch offset 25569 days);
5. the caller's fallback.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

# Days between the spreadsheet epoch (1899-12-30) and 1970-01-01.
SERIAL_EPOCH_OFFSET = 25569
_UNIX_EPOCH = date(1970, 1, 1)

_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_DMY = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_SERIAL = re.compile(r"^\d{5}$")


def _fmt(y: int, m: int, d: int) -> str | None:
    try:
        return date(y, m, d).isoformat()
    except ValueError:
        return None


def _fallback(fallback: date | str) -> str:
    if isinstance(fallback, datetime):
        return fallback.date().isoformat()
    if isinstance(fallback, date):
        return fallback.isoformat()
    return str(fallback)


def _serial_token(raw: Any) -> str | None:
    # Integral spreadsheet numbers are treated like their digit strings.
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, float | Decimal):
        if raw == int(raw):
            return str(int(raw))
        return None
    return str(raw).strip()


def resolve_date(raw: Any, fallback: date | str) -> str:
    """Resolve ``raw`` to ``YYYY-MM-DD`` or return ``fallback`` formatted."""

    if isinstance(raw, datetime):
        return f"{raw.year:04d}-{raw.month:02d}-{raw.day:02d}"
    if isinstance(raw, date):
        return f"{raw.year:04d}-{raw.month:02d}-{raw.day:02d}"
    if raw is None:
        return _fallback(fallback)

    if isinstance(raw, str):
        s = raw.strip()
        m = _ISO.match(s)
        if m:
            out = _fmt(int(m.group(1)), int(m.group(2)), int(m.group(3)))
            if out:
                return out
        m = _DMY.match(s)
        if m:
            out = _fmt(int(m.group(3)), int(m.group(2)), int(m.group(1)))
            if out:
                return out

    token = _serial_token(raw)
    if token and _SERIAL.match(token):
        resolved = _UNIX_EPOCH + timedelta(days=int(token) - SERIAL_EPOCH_OFFSET)
        return resolved.isoformat()

    return _fallback(fallback)


def correct_year(iso_date: str, current_year: int) -> str:
    """Pull implausible years back to ``current_year``.

    Used on the AI-extraction path, where truncated or ambiguous year digits
    are common. Dates within one year of ``current_year`` are kept; otherwise
    the year is replaced and month/day are kept (Feb 29 becomes Feb 28 when
    the target year is not a leap year).
    """

    d = date.fromisoformat(iso_date)
    if abs(d.year - current_year) <= 1:
        return iso_date
    day = d.day
    if d.month == 2 and day == 29 and not calendar.isleap(current_year):
        day = 28
    return date(current_year, d.month, day).isoformat()


__all__ = ["SERIAL_EPOCH_OFFSET", "correct_year", "resolve_date"]

"""Process-level configuration read once from the environment.

Values are collected into an immutable :class:`IntakeConfig` which callers
thread explicitly into normalization contexts and classifier rules. Nothing in
the normalization core reads the environment directly.

Environment variables
---------------------
- ``TXN_INTAKE_USD_RATE``: VND per USD used for base-currency conversion
  (default ``25500``).
- ``TXN_INTAKE_AMOUNT_THRESHOLD``: minimum value for a headerless cell to be
  considered an amount (default ``10000``).
- ``TXN_INTAKE_PERSONNEL_KEYWORDS``: comma-separated keyword list that
  replaces the built-in personnel vocabulary.
- ``TXN_INTAKE_SCAN_CONCURRENCY``: max concurrent image extractions
  (default ``4``).
- ``TXN_INTAKE_MODEL``: OpenAI model used for receipt extraction.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

DEFAULT_USD_RATE = Decimal("25500")
# Tuned for VND, where meaningful amounts start in the tens of thousands.
DEFAULT_AMOUNT_THRESHOLD = Decimal("10000")
DEFAULT_SCAN_CONCURRENCY = 4
DEFAULT_MODEL = "gpt-5-mini"

DEFAULT_PERSONNEL_KEYWORDS: tuple[str, ...] = (
    "lương",
    "luong",
    "nhân công",
    "nhân viên",
    "công nhật",
    "thưởng",
    "phụ cấp",
    "salary",
    "wage",
    "payroll",
    "bonus",
)


@dataclass(frozen=True, slots=True)
class IntakeConfig:
    usd_rate: Decimal = DEFAULT_USD_RATE
    amount_threshold: Decimal = DEFAULT_AMOUNT_THRESHOLD
    personnel_keywords: tuple[str, ...] = field(default=DEFAULT_PERSONNEL_KEYWORDS)
    scan_concurrency: int = DEFAULT_SCAN_CONCURRENCY
    model: str = DEFAULT_MODEL


def _decimal_env(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {raw!r}")
    return value


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


def load_config(environ: Mapping[str, str] | None = None) -> IntakeConfig:
    """Build an :class:`IntakeConfig` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ

    keywords = DEFAULT_PERSONNEL_KEYWORDS
    raw_keywords = env.get("TXN_INTAKE_PERSONNEL_KEYWORDS")
    if raw_keywords:
        parsed = tuple(k.strip().casefold() for k in raw_keywords.split(",") if k.strip())
        if parsed:
            keywords = parsed

    return IntakeConfig(
        usd_rate=_decimal_env(env, "TXN_INTAKE_USD_RATE", DEFAULT_USD_RATE),
        amount_threshold=_decimal_env(
            env, "TXN_INTAKE_AMOUNT_THRESHOLD", DEFAULT_AMOUNT_THRESHOLD
        ),
        personnel_keywords=keywords,
        scan_concurrency=_int_env(env, "TXN_INTAKE_SCAN_CONCURRENCY", DEFAULT_SCAN_CONCURRENCY),
        model=(env.get("TXN_INTAKE_MODEL") or "").strip() or DEFAULT_MODEL,
    )


__all__ = [
    "DEFAULT_AMOUNT_THRESHOLD",
    "DEFAULT_PERSONNEL_KEYWORDS",
    "DEFAULT_USD_RATE",
    "IntakeConfig",
    "load_config",
]

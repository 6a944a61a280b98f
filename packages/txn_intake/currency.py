"""Currency classification and base-currency (VND) conversion."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .config import DEFAULT_USD_RATE
from .models import Currency


@dataclass(frozen=True, slots=True)
class BaseAmount:
    """An amount in the base currency plus optional conversion provenance."""

    amount: Decimal
    original_amount: Decimal | None = None
    original_currency: Currency | None = None
    rate_used: Decimal | None = None

    @property
    def converted(self) -> bool:
        return self.original_currency is not None


def classify_currency(raw: Any) -> Currency:
    """USD when the token contains ``"USD"`` (any case); VND otherwise."""

    if raw is None:
        return Currency.VND
    return Currency.USD if "USD" in str(raw).upper() else Currency.VND


def to_base(
    amount: Decimal, currency: Currency | str, rate: Decimal | int = DEFAULT_USD_RATE
) -> BaseAmount:
    """Convert ``amount`` into VND.

    USD amounts are multiplied by ``rate`` and rounded to the nearest whole
    VND, keeping the original amount, currency and rate for auditing. VND
    amounts pass through without provenance.
    """

    cur = classify_currency(currency) if not isinstance(currency, Currency) else currency
    if cur is not Currency.USD:
        return BaseAmount(amount=amount)

    rate_d = Decimal(rate)
    converted = (Decimal(amount) * rate_d).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return BaseAmount(
        amount=converted.quantize(Decimal("0.01")),
        original_amount=Decimal(amount),
        original_currency=Currency.USD,
        rate_used=rate_d,
    )


__all__ = ["BaseAmount", "classify_currency", "to_base"]

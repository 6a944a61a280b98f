"""Data models for ``txn_intake``.

Canonical records are frozen ``dataclass`` instances; untrusted model output is
validated with pydantic (see :class:`ExtractedFields`). Per-row outcomes are
tagged variants (``Transaction | Rejected``, ``ClassifiedRow | Skipped``) so
expected rejections never travel as exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class TxType(StrEnum):
    INCOME = "Income"
    EXPENSE = "Expense"


class Currency(StrEnum):
    VND = "VND"
    USD = "USD"


# ---------------------------------------------------------------------------
# Raw input and canonical output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawFields:
    """An unvalidated bag of raw tokens produced by any extraction path.

    Every value is optional and may be a string, number, or native date. The
    provenance fields are only populated when a canonical transaction is
    recast for re-normalization.
    """

    date: Any = None
    type: Any = None
    subject: Any = None
    amount: Any = None
    currency: Any = None
    note: Any = None
    created_by: Any = None
    original_amount: Any = None
    original_currency: Any = None
    rate_used: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RawFields:
        """Build from a mapping, accepting ``createdBy`` as an alias."""

        created_by = data.get("created_by", data.get("createdBy"))
        return cls(
            date=data.get("date"),
            type=data.get("type"),
            subject=data.get("subject"),
            amount=data.get("amount"),
            currency=data.get("currency"),
            note=data.get("note"),
            created_by=created_by,
        )


@dataclass(frozen=True, slots=True)
class Transaction:
    """A canonical, persistable transaction.

    ``amount`` is non-negative with two fractional digits; the direction of
    money is carried by ``type``. Provenance fields are set only when a USD
    amount was converted into the base currency.
    """

    id: int
    date: str
    type: TxType
    subject: str
    amount: Decimal
    currency: Currency
    note: str = ""
    created_by: str = "unknown"
    source: str = "manual"
    original_amount: Decimal | None = None
    original_currency: Currency | None = None
    rate_used: Decimal | None = None

    def to_raw_fields(self) -> RawFields:
        return RawFields(
            date=self.date,
            type=self.type.value,
            subject=self.subject,
            amount=self.amount,
            currency=self.currency.value,
            note=self.note,
            created_by=self.created_by,
            original_amount=self.original_amount,
            original_currency=(
                self.original_currency.value if self.original_currency is not None else None
            ),
            rate_used=self.rate_used,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view; decimals are rendered as fixed-point strings."""

        out: dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "type": self.type.value,
            "subject": self.subject,
            "amount": f"{self.amount:.2f}",
            "currency": self.currency.value,
            "note": self.note,
            "createdBy": self.created_by,
            "source": self.source,
        }
        if self.original_currency is not None:
            out["original"] = {
                "amount": f"{self.original_amount:.2f}",
                "currency": self.original_currency.value,
            }
            out["rateUsed"] = str(self.rate_used)
        return out


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str


# ---------------------------------------------------------------------------
# Spreadsheet helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Canonical field -> zero-based column index (``None`` when absent)."""

    date: int | None = None
    type: int | None = None
    subject: int | None = None
    amount: int | None = None
    currency: int | None = None
    note: int | None = None
    created_by: int | None = None

    @property
    def usable(self) -> bool:
        """True when the header carries enough to build transactions."""

        return self.subject is not None and self.amount is not None


@dataclass(frozen=True, slots=True)
class ClassifiedRow:
    subject: str
    note: str
    amount: Decimal
    is_personnel: bool
    column: int


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: str


@dataclass(frozen=True, slots=True)
class StagedRow:
    row_number: int
    row: ClassifiedRow


@dataclass(frozen=True, slots=True)
class SkippedRow:
    row_number: int
    reason: str


@dataclass(slots=True)
class StagedSheet:
    """Heuristic preview of a headerless sheet awaiting user confirmation."""

    rows: list[StagedRow] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Rejection:
    """A per-item rejection.

    ``position`` is the 0-based index in the submitted batch, except for
    spreadsheet imports where it is the 1-based sheet row number.
    """

    position: int
    item: Any
    reason: str


@dataclass(frozen=True, slots=True)
class ItemError:
    """A per-item external failure keyed by the item's original name."""

    key: str
    reason: str


@dataclass(slots=True)
class BatchResult:
    accepted: list[Transaction] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)
    # Whole-batch input failure; when set, no partial results are reported.
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> dict[str, Any]:
        return {
            "accepted": [t.to_dict() for t in self.accepted],
            "rejected": [{"position": r.position, "reason": r.reason} for r in self.rejected],
            "errors": [{"item": e.key, "reason": e.reason} for e in self.errors],
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# AI extraction DTO
# ---------------------------------------------------------------------------


class ExtractedFields(BaseModel):
    """Validated shape of the JSON returned by the image extractor.

    Extras are ignored; numeric values are accepted where the model emits
    numbers instead of strings.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str | None = None
    subject: str | None = None
    amount: str | int | float | None = None
    currency: str | None = None
    type: str | None = None
    note: str | None = None

    @field_validator("date", "subject", "currency", "type", "note", mode="before")
    @classmethod
    def _stringify_scalars(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("expected a string, got a boolean")
        if isinstance(v, int | float):
            return str(v)
        return v

    def to_raw_fields(self) -> RawFields:
        return RawFields(
            date=self.date or None,
            type=self.type,
            subject=self.subject,
            amount=self.amount,
            currency=self.currency,
            note=self.note,
        )


__all__ = [
    "BatchResult",
    "ClassifiedRow",
    "ColumnMap",
    "Currency",
    "ExtractedFields",
    "ItemError",
    "RawFields",
    "Rejected",
    "Rejection",
    "SkippedRow",
    "Skipped",
    "StagedRow",
    "StagedSheet",
    "Transaction",
    "TxType",
]

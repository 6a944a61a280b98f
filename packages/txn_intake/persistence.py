# ruff: noqa: I001
"""Persistence integration for txn_intake.

Functions here read and write canonical transactions in the shared database
owned by ``libs/db``. They take an active SQLAlchemy session and never commit;
the caller owns the transaction (typically via ``db.client.session_scope``).

The store is treated as a key-value collaborator keyed by transaction id. No
multi-row atomicity is assumed: :func:`rollback_import` is a compensating
delete of an id set, and concurrent writes to the same ids while a rollback
runs are not guarded against.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.ledger import LedgerTransaction
from .amounts import ZERO, is_zero_token, parse_amount
from .currency import classify_currency
from .dates import resolve_date
from .logging_setup import get_logger
from .models import Currency, Transaction, TxType
from .normalize import infer_type

_logger = get_logger("txn_intake.persistence")

# Fields a caller may change through ``update_transaction``.
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"date", "type", "subject", "amount", "currency", "note", "created_by"}
)


def _to_row(tx: Transaction) -> LedgerTransaction:
    return LedgerTransaction(
        id=tx.id,
        date=date.fromisoformat(tx.date),
        type=tx.type.value,
        subject=tx.subject,
        amount=tx.amount,
        currency=tx.currency.value,
        note=tx.note,
        created_by=tx.created_by,
        source=tx.source,
        original_amount=tx.original_amount,
        original_currency=(
            tx.original_currency.value if tx.original_currency is not None else None
        ),
        rate_used=tx.rate_used,
    )


def _from_row(row: LedgerTransaction) -> Transaction:
    return Transaction(
        id=int(row.id),
        date=row.date.isoformat(),
        type=TxType(row.type),
        subject=row.subject,
        amount=Decimal(row.amount).quantize(Decimal("0.01")),
        currency=Currency(row.currency),
        note=row.note or "",
        created_by=row.created_by or "unknown",
        source=row.source or "manual",
        original_amount=(
            Decimal(row.original_amount).quantize(Decimal("0.01"))
            if row.original_amount is not None
            else None
        ),
        original_currency=(
            Currency(row.original_currency) if row.original_currency is not None else None
        ),
        rate_used=Decimal(row.rate_used) if row.rate_used is not None else None,
    )


def insert_transactions(session: Session, transactions: Iterable[Transaction]) -> list[int]:
    """Insert each transaction and flush; return the inserted ids in order.

    Database errors (e.g. a duplicate id) propagate to the caller.
    """

    ids: list[int] = []
    for tx in transactions:
        session.add(_to_row(tx))
        ids.append(tx.id)
    session.flush()
    _logger.info("insert_transactions:done count=%d", len(ids))
    return ids


def _normalize_update(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(fields) - UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(
            f"Unsupported update field(s): {', '.join(unknown)}. "
            f"Allowed: {sorted(UPDATABLE_FIELDS)}"
        )

    values: dict[str, Any] = {}
    for key, raw in fields.items():
        if key == "date":
            values["date"] = date.fromisoformat(resolve_date(raw, date.today()))
        elif key == "type":
            values["type"] = infer_type(raw).value
        elif key == "amount":
            amount = parse_amount(raw)
            if amount == ZERO and not is_zero_token(raw):
                raise ValueError(f"amount must be a number, got {raw!r}")
            values["amount"] = amount
        elif key == "currency":
            values["currency"] = classify_currency(raw).value
        elif key == "subject":
            subject = str(raw or "").strip()
            if not subject:
                raise ValueError("subject must be non-empty")
            values["subject"] = subject
        else:
            values[key] = str(raw or "").strip()
    if "amount" in values or "currency" in values:
        # Conversion provenance no longer describes the edited amount.
        values["original_amount"] = None
        values["original_currency"] = None
        values["rate_used"] = None
    return values


def update_transaction(session: Session, tx_id: int, fields: Mapping[str, Any]) -> bool:
    """Apply ``fields`` to the transaction ``tx_id``; return False when missing.

    Values go through the same parsers as ingestion so stored rows stay
    canonical.
    """

    values = _normalize_update(fields)
    row = session.get(LedgerTransaction, tx_id)
    if row is None:
        return False
    for key, value in values.items():
        setattr(row, key, value)
    session.flush()
    return True


def delete_by_ids(session: Session, ids: Iterable[int]) -> int:
    """Delete exactly the given ids; return the number of rows removed."""

    id_list = sorted({int(i) for i in ids})
    if not id_list:
        return 0
    result = session.execute(
        delete(LedgerTransaction).where(LedgerTransaction.id.in_(id_list))
    )
    count = result.rowcount or 0
    _logger.info("delete_by_ids:done requested=%d deleted=%d", len(id_list), count)
    return count


def rollback_import(session: Session, ids: Iterable[int]) -> int:
    """Undo a batch import by deleting the ids it produced (compensating delete)."""

    return delete_by_ids(session, ids)


def list_transactions(session: Session) -> list[Transaction]:
    """Return every transaction ordered by date desc, id desc."""

    stmt = select(LedgerTransaction).order_by(
        LedgerTransaction.date.desc(), LedgerTransaction.id.desc()
    )
    return [_from_row(row) for row in session.scalars(stmt)]


__all__ = [
    "UPDATABLE_FIELDS",
    "delete_by_ids",
    "insert_transactions",
    "list_transactions",
    "rollback_import",
    "update_transaction",
]

"""Public API for the ``txn_intake`` package.

The normalization core and pipelines are re-exported from their modules. The
persistence helpers defined here import the DB stack lazily so consumers that
only normalize data never load SQLAlchemy.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .amounts import parse_amount  # noqa: F401  (re-export)
from .currency import classify_currency, to_base  # noqa: F401  (re-export)
from .dates import correct_year, resolve_date  # noqa: F401  (re-export)
from .ingest.columns import build_column_map, map_row, map_rows  # noqa: F401  (re-export)
from .ingest.heuristics import classify_row  # noqa: F401  (re-export)
from .models import BatchResult, Transaction
from .normalize import normalize  # noqa: F401  (re-export)
from .pipeline import (  # noqa: F401  (re-export)
    confirm_rows,
    import_sheet,
    ingest_manual,
    run_batch,
    scan_images,
    stage_sheet,
)


def persist_batch(result: BatchResult, *, database_url: str | None = None) -> list[int]:
    """Insert every accepted transaction of ``result`` in one session.

    Returns the inserted ids, which callers keep for :func:`rollback`. A
    database failure propagates and nothing from this call is committed.
    """

    if not result.accepted:
        return []

    from db.client import session_scope

    from .persistence import insert_transactions

    with session_scope(database_url=database_url) as session:
        return insert_transactions(session, result.accepted)


def list_all(*, database_url: str | None = None) -> list[Transaction]:
    from db.client import session_scope

    from .persistence import list_transactions

    with session_scope(database_url=database_url) as session:
        return list_transactions(session)


def update(
    tx_id: int, fields: Mapping[str, Any], *, database_url: str | None = None
) -> bool:
    from db.client import session_scope

    from .persistence import update_transaction

    with session_scope(database_url=database_url) as session:
        return update_transaction(session, tx_id, fields)


def rollback(ids: Iterable[int], *, database_url: str | None = None) -> int:
    """Delete exactly ``ids`` (compensating undo of a batch import)."""

    from db.client import session_scope

    from .persistence import rollback_import

    with session_scope(database_url=database_url) as session:
        return rollback_import(session, ids)

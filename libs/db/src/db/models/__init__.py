"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``txn_intake``.
"""

from .ledger import Base, LedgerTransaction

__all__ = [
    "Base",
    "LedgerTransaction",
]

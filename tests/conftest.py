"""Pytest configuration for test isolation.

Commands and API helpers read ``DATABASE_URL`` and the ``TXN_INTAKE_*``
variables from the environment, and ``db.client`` caches engines per URL for
the whole process. Without isolation a developer's ``.env`` or a previous
test's engine could leak into later tests.

The autouse fixture below clears the relevant variables for every test and
disposes cached engines afterwards.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure `packages/` and the db library resolve without an editable install.
_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT)]
    if p not in sys.path
]

_ENV_VARS = (
    "DATABASE_URL",
    "OPENAI_API_KEY",
    "TXN_INTAKE_USD_RATE",
    "TXN_INTAKE_AMOUNT_THRESHOLD",
    "TXN_INTAKE_PERSONNEL_KEYWORDS",
    "TXN_INTAKE_SCAN_CONCURRENCY",
    "TXN_INTAKE_MODEL",
    "TXN_INTAKE_LOG_LEVEL",
    "TXN_INTAKE_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    from db.client import dispose_engines

    dispose_engines()

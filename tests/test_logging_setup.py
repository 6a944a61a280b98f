from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from txn_intake import logging_setup
from txn_intake.logging_setup import configure_logging, get_logger

_CLIENT_LOGGERS = ("openai", "httpx", "sqlalchemy.engine")


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    pkg = logging.getLogger("txn_intake")
    saved = (list(pkg.handlers), pkg.level, pkg.propagate)
    client_levels = {name: logging.getLogger(name).level for name in _CLIENT_LOGGERS}
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    pkg.handlers = []
    yield
    pkg.handlers = saved[0]
    pkg.setLevel(saved[1])
    pkg.propagate = saved[2]
    for name, level in client_levels.items():
        logging.getLogger(name).setLevel(level)


def test_configure_logging_writes_package_records(fresh_logging):
    stream = io.StringIO()
    configure_logging("info", fmt="%(name)s:%(levelname)s:%(message)s", stream=stream)
    get_logger("txn_intake.pipeline").info("import_sheet:done accepted=%d", 3)
    get_logger("txn_intake.pipeline").debug("hidden")
    assert stream.getvalue() == "txn_intake.pipeline:INFO:import_sheet:done accepted=3\n"


def test_format_and_level_come_from_the_environment(fresh_logging, monkeypatch):
    monkeypatch.setenv("TXN_INTAKE_LOG_LEVEL", "warning")
    monkeypatch.setenv("TXN_INTAKE_LOG_FORMAT", "[%(levelname)s] %(message)s")
    stream = io.StringIO()
    configure_logging(stream=stream)
    log = get_logger("txn_intake.persistence")
    log.info("skipped")
    log.warning("rollback:partial")
    assert stream.getvalue() == "[WARNING] rollback:partial\n"


def test_client_libraries_are_quieted_unless_debugging(fresh_logging):
    configure_logging(logging.INFO, stream=io.StringIO())
    for name in _CLIENT_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_debug_leaves_client_libraries_alone(fresh_logging):
    for name in _CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    configure_logging(logging.DEBUG, stream=io.StringIO())
    for name in _CLIENT_LOGGERS:
        assert logging.getLogger(name).level == logging.NOTSET


def test_configure_logging_is_idempotent(fresh_logging):
    configure_logging(stream=io.StringIO())
    configure_logging(stream=io.StringIO())
    assert len(logging.getLogger("txn_intake").handlers) == 1

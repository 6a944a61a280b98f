"""Centralized logging configuration for the ``txn_intake`` package.

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"txn_intake"``). Called once by the CLI at startup.
- Chatty client libraries (OpenAI, httpx, SQLAlchemy engine, Alembic) are held
  at ``WARNING`` unless the package itself logs at ``DEBUG``.
- ``get_logger(name)``: acquire a module logger, ensuring the package root has
  a ``NullHandler`` when nothing has been configured yet.

Library modules never attach their own handlers; they call
``get_logger("txn_intake.<module>")`` and rely on the host application.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "txn_intake"
_LEVEL_ENV = "TXN_INTAKE_LOG_LEVEL"
_FORMAT_ENV = "TXN_INTAKE_LOG_FORMAT"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_NOISY_LOGGERS: tuple[str, ...] = ("openai", "httpx", "httpcore", "sqlalchemy.engine", "alembic")
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    ``level`` falls back to ``TXN_INTAKE_LOG_LEVEL`` and then ``INFO``; ``fmt``
    falls back to ``TXN_INTAKE_LOG_FORMAT``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or os.getenv(_FORMAT_ENV) or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    if resolved > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with a silent default until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]

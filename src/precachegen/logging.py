"""Logging utilities for precachegen.

Stdlib logging routed to the active reporter. Build-time messages use the
``precachegen.build.<plugin>`` loggers handed out by compilations.
"""

from __future__ import annotations

import logging

from .reporting import get_reporter

_LOGGER_NAME = "precachegen"

__all__ = ["get_logger", "configure_logging"]


def get_logger(name: str | None = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


class _ReporterHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            rep = get_reporter()
            msg = self.format(record)
            if record.levelno >= logging.ERROR:
                rep.error(msg)
            elif record.levelno >= logging.WARNING:
                rep.warning(msg)
            elif record.levelno >= logging.INFO:
                rep.status(msg)
            else:
                rep.verbose(msg, logger=record.name)
        except Exception:
            self.handleError(record)


def configure_logging(verbosity: int = 0) -> None:
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = _ReporterHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

"""Central logging configuration.

The composition root calls `configure_logging` once: DEBUG/INFO records go to
stdout, WARNING and above to stderr, and every record carries the current
correlation id. Core code never installs handlers; it emits through
`LoggingPort` or a module logger.

The correlation id lives in a context variable. The web driver binds one per
request, each poll loop binds its job id inside its own task, so concurrent
jobs can be told apart in the log stream.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, TextIO

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(correlation_id)s: %(message)s"

# Third-party loggers that are too chatty at DEBUG for a polling service
NOISY_LOGGERS = ("aiohttp.access", "asyncio", "multipart")


def coerce_level(level: int | str | None) -> int:
    """Numeric level for an int, a level name ("debug", "WARNING") or None."""
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(str(level).upper().strip(), logging.INFO)


@contextmanager
def bind_correlation_id(value: str) -> Iterator[str]:
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)


class _CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


class _LevelBandFilter(logging.Filter):
    """Pass records with min_level <= levelno <= max_level."""

    def __init__(self, min_level: int = logging.NOTSET, max_level: int = logging.CRITICAL):
        super().__init__()
        self.min_level = min_level
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return self.min_level <= record.levelno <= self.max_level


def _sink(stream: TextIO, band: _LevelBandFilter, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.addFilter(band)
    handler.addFilter(_CorrelationIdFilter())
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    disable_uvicorn_access: bool = False,
    quiet: Sequence[str] = NOISY_LOGGERS,
) -> None:
    """Install the stdout/stderr sinks on the root logger.

    Safe to call again (e.g. on reload): existing root handlers are replaced.
    Uvicorn inherits this setup when started with `log_config=None`.
    """
    numeric_level = coerce_level(level)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.addHandler(_sink(sys.stdout, _LevelBandFilter(max_level=logging.INFO), formatter))
    root.addHandler(_sink(sys.stderr, _LevelBandFilter(min_level=logging.WARNING), formatter))

    for name in quiet:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))
    if disable_uvicorn_access:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger("meshjob").debug(
        "Logging configured level=%s quiet=%s", logging.getLevelName(numeric_level), ",".join(quiet)
    )

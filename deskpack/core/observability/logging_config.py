"""
Logging configuration — console and file output for a bundling run.

``setup_logging()`` is called once by main.py; every module logs through
``logging.getLogger(__name__)``.

Records are decorated with two extra attributes:

    component    logger name without the ``deskpack.`` prefix
                 (``services.vendor``, ``engine.compile`` ...)
    env_tag      ``[linux-amd64] `` while an environment is being bundled,
                 empty otherwise

so that ``-v`` shows per-environment progress and ``--debug`` reads as a
step-by-step trace of each environment:

    12:00:01 [linux-amd64] Downloading https://.../electron-v1.6.5-linux-x64.zip
    12:00:04 DEBUG engine.finishers:74 [linux-amd64] Moving .../binary to .../Demo

Levels: CLI flag > DESKPACK_LOG_LEVEL > WARNING.  A log file
(DESKPACK_LOG_FILE, DESKPACK_LOG_FILE_LEVEL) always gets the full trace
format with dates.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Iterator
from contextvars import ContextVar

_ROOT_PACKAGE = "deskpack."

_FMT_MINIMAL = "%(message)s"
_FMT_PROGRESS = "%(asctime)s %(env_tag)s%(message)s"
_FMT_TRACE = "%(asctime)s %(levelname)-5s %(component)s:%(lineno)d %(env_tag)s%(message)s"
_DATEFMT_CONSOLE = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_current_environment: ContextVar[str | None] = ContextVar("deskpack_environment", default=None)


class EnvironmentFilter(logging.Filter):
    """Attach ``component`` and ``env_tag`` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        record.component = name[len(_ROOT_PACKAGE):] if name.startswith(_ROOT_PACKAGE) else name
        env = _current_environment.get()
        record.env_tag = f"[{env}] " if env else ""
        return True


@contextlib.contextmanager
def log_environment(name: str) -> Iterator[None]:
    """Tag every record emitted inside the block with environment ``name``."""
    marker = _current_environment.set(name)
    try:
        yield
    finally:
        _current_environment.reset(marker)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for a CLI run.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a log file.
        log_file_level: Level for the log file; defaults to ``level``.
    """
    numeric_level = _parse_level(level)
    env_filter = EnvironmentFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.addFilter(env_filter)
    console.setFormatter(_console_formatter(numeric_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.addFilter(env_filter)
        fh.setFormatter(logging.Formatter(_FMT_TRACE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    logging.raiseExceptions = False


def _console_formatter(numeric_level: int) -> logging.Formatter:
    if numeric_level <= logging.DEBUG:
        return logging.Formatter(_FMT_TRACE, datefmt=_DATEFMT_CONSOLE)
    if numeric_level <= logging.INFO:
        return logging.Formatter(_FMT_PROGRESS, datefmt=_DATEFMT_CONSOLE)
    return logging.Formatter(_FMT_MINIMAL)


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric

"""
Logging configuration — one call at CLI startup.

Modules log through ``logging.getLogger(__name__)`` and inherit this.
Console output goes to stderr so stdout stays clean for records.

Console level precedence:
    --debug / --verbose / --quiet  >  RBW_LOG_LEVEL  >  WARNING

A second, more detailed sink can be added with RBW_LOG_FILE
(level from RBW_LOG_FILE_LEVEL, else the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

ENV_LEVEL = "RBW_LOG_LEVEL"
ENV_FILE = "RBW_LOG_FILE"
ENV_FILE_LEVEL = "RBW_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d [%(threadName)s] %(message)s"

# (max level, format, datefmt): first row whose level is >= the console level wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(threadName)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

# Chatty at DEBUG, useless otherwise
_NOISY_LOGGERS = ("asyncio", "concurrent.futures")


def level_from_flags(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if env is None else env
    return env.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name.
        log_file: Optional log file path.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold noisy library loggers at WARNING
            unless the console is at DEBUG.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def setup_from_env(debug: bool = False, verbose: bool = False, quiet: bool = False) -> None:
    """``setup_logging`` with levels and file taken from flags and RBW_* variables."""
    setup_logging(
        level=level_from_flags(debug, verbose, quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )


def _console_format(level: int) -> tuple[str, str | None]:
    for limit, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= limit:
            return fmt, datefmt
    return "%(message)s", None


def _parse_level(level: str | None) -> int:
    """Level name to number; anything unrecognised means WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING

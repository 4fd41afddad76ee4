# flowkit/utils/logger.py
"""
Project logger. Only the CLI and file IO log; the workflow model, validator
and differ return values and stay silent.

Environment:
  LOG_LEVEL        level name (default INFO)
  FLOWKIT_LOG_DIR  if set, also write a rotating log file there
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

ROOT_LOGGER = "flowkit"

_FMT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_COLORS = (
    (logging.ERROR, "\033[91m"),    # red
    (logging.WARNING, "\033[93m"),  # yellow
    (logging.INFO, "\033[92m"),     # green
)


def _env_level(default: str = "INFO") -> int:
    """Level from LOG_LEVEL; unknown names fall back to INFO."""
    lvl = logging.getLevelName(os.getenv("LOG_LEVEL", default).upper())
    return lvl if isinstance(lvl, int) else logging.INFO


class _ColorFormatter(logging.Formatter):
    """ANSI color by level, only when stderr is a terminal."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not sys.stderr.isatty():
            return base
        for threshold, code in _COLORS:
            if record.levelno >= threshold:
                return f"{code}{base}\033[0m"
        return base


def init_logger(
    name: str = ROOT_LOGGER,
    level: int | None = None,
    log_dir: str | Path | None = None,
    file_name: str = "flowkit.log",
    file_max_mb: int = 5,
    file_backup: int = 3,
) -> logging.Logger:
    """
    Initialize the project logger:
      - colored stream handler on stderr (stdout carries command output)
      - optional rotating file handler
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(level if level is not None else _env_level())

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(_ColorFormatter(fmt=_FMT, datefmt=_DATEFMT))
    logger.addHandler(sh)

    log_dir = log_dir or os.getenv("FLOWKIT_LOG_DIR")
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            filename=str(log_dir / file_name),
            maxBytes=file_max_mb * 1024 * 1024,
            backupCount=file_backup,
            encoding="utf-8",
        )
        fh.setFormatter(logging.Formatter(fmt=_FMT, datefmt=_DATEFMT))
        logger.addHandler(fh)

    return logger


def set_level(level: int) -> None:
    """Change the level of the project logger (e.g. for --verbose)."""
    logging.getLogger(ROOT_LOGGER).setLevel(level)


log = init_logger()


def get_logger(child: str) -> logging.Logger:
    """Child logger under the project logger, e.g. get_logger("cli")."""
    return logging.getLogger(ROOT_LOGGER).getChild(child)

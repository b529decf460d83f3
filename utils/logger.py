"""
===============================================================================
  Logging — console + rotating file output for the movement scanner
===============================================================================
  All modules log through children of the "movements" logger.  Handlers
  are attached only by setup_logging(), which the CLI driver calls; importing
  the engine as a library creates no files and adds no handlers.
===============================================================================
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

import config as cfg

ROOT_LOGGER = "movements"

_FORMAT = logging.Formatter(
    "[%(asctime)s] %(levelname)-8s %(name)-20s │ %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        level = cfg.LOG_LEVEL
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Configure the scanner's root logger and return it.

    Handlers are attached once; later calls only change the level, so the
    CLI can raise verbosity after library code has already logged.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_resolve_level(level))

    if logger.handlers:
        return logger

    cfg.LOG_DIR.mkdir(parents=True, exist_ok=True)

    # ── Console ──────────────────────────────────────────────────────────
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_FORMAT)
    logger.addHandler(console)

    # ── Scan log (10 MB, 5 backups) ──────────────────────────────────────
    scan_log = RotatingFileHandler(
        cfg.LOG_DIR / "movements.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    scan_log.setFormatter(_FORMAT)
    logger.addHandler(scan_log)

    return logger


def get_logger(module: str) -> logging.Logger:
    """Return a child logger for *module*; output goes wherever the host app routes it."""
    return logging.getLogger(ROOT_LOGGER).getChild(module)

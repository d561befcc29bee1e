"""Logging configuration for the templatehelper command line.

Records go to a rotating file under ``~/.templatehelper/logs`` (or
``TEMPLATEHELPER_LOG_DIR``) and, unless disabled, to stderr so that stdout
stays free for JSON outcomes and exported markup.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path

__all__ = ["LOG_FORMAT", "setup_logging", "get_log_path"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "templatehelper.log"

_DEFAULT_LOG_DIR = Path.home() / ".templatehelper" / "logs"
_THIRD_PARTY_LOGGERS: tuple[str, ...] = ("asyncio", "docx")

_state: dict[str, Path | None] = {"log_path": None}


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install file and console handlers on the root logger.

    Repeated calls are no-ops unless ``force`` is set; the path of the active
    log file is returned either way.
    """
    current = _state["log_path"]
    if current is not None and not force:
        return current

    directory = Path(log_dir or os.environ.get("TEMPLATEHELPER_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    logging.basicConfig(
        level=level,
        handlers=_build_handlers(log_path, level, console=console, max_bytes=max_bytes, backup_count=backup_count),
        force=True,
    )
    logging.captureWarnings(True)

    # chatty libraries only surface warnings unless the root level is stricter
    quiet = max(level, logging.WARNING)
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    _state["log_path"] = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` runs."""

    return _state["log_path"]


def _build_handlers(
    log_path: Path,
    level: int,
    *,
    console: bool,
    max_bytes: int,
    backup_count: int,
) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers

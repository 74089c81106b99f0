"""Logging for ava-shell.

Everything logs under the ``ava_shell`` logger. The console only shows
warnings unless ``-v`` is given, while the rotating file keeps the full INFO
trail of every command and node call.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

__all__ = ["setup_logger", "get_logger", "current_log_file"]

DEFAULT_LOG_FILE = Path("~/.ava-shell/logs/shell.log").expanduser()
CONSOLE_FORMAT = "[%(levelname).1s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024  # 5MB
LOG_BACKUP_COUNT = 3

# HTTP stack used by the node client.
NOISY_LOGGERS = ("urllib3", "requests")

_log_file: Optional[Path] = None


def setup_logger(
    name: str,
    verbose: bool = False,
    log_file: Union[str, Path, bool, None] = None,
) -> logging.Logger:
    """Configure the shell's logger, replacing handlers from a previous call.

    ``log_file`` is ``None``/``True`` for ``~/.ava-shell/logs/shell.log``,
    ``False`` to disable the file, or a custom path.
    """
    global _log_file

    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    console_level = logging.INFO if verbose else logging.WARNING
    logger.addHandler(_console_handler(console_level))

    _log_file = _resolve_log_path(log_file)
    if _log_file is not None:
        logger.addHandler(_file_handler(_log_file))
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(console_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def current_log_file() -> Optional[Path]:
    """Path of the file the last ``setup_logger`` call writes to, if any."""
    return _log_file


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _resolve_log_path(log_file: Union[str, Path, bool, None]) -> Optional[Path]:
    if log_file is False:
        return None
    if log_file is None or log_file is True:
        return DEFAULT_LOG_FILE
    return Path(log_file).expanduser()

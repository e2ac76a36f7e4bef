"""SearchDSL logging.

Everything logs through the ``SearchDSL`` logger. `configure_logging` gives
it (and, for ``serve``, the uvicorn loggers) one shared set of handlers, so
CLI output, request logs and server lifecycle lines read the same:

    10-19 14:02:11 [INFO] Search completed: total=3 hits=3 knn=1 took=0.002s
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Final, Iterable

LOG_FORMAT: Final = "%(asctime)s [%(levelabbr)s] %(message)s"
DATE_FORMAT: Final = "%m-%d %H:%M:%S"

# uvicorn's own loggers; routed through our handlers when serving.
SERVER_LOGGERS: Final = ("uvicorn", "uvicorn.error", "uvicorn.access")

_LEVEL_ABBREV: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}


class _AbbrevLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - record is stdlib name
        record.levelabbr = _LEVEL_ABBREV.get(record.levelno, record.levelname[:4])
        return super().format(record)


log = logging.getLogger("SearchDSL")


def _log_file(log_dir: str, action: str) -> Path:
    action_dir = Path(log_dir or "log") / action
    action_dir.mkdir(parents=True, exist_ok=True)
    return action_dir / f"{action}_{datetime.now():%m%d%H%M%S}.log"


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = False,
    log_dir: str = "log",
    extra_loggers: Iterable[str] = (),
) -> None:
    """Attach console (and optional file) handlers to the package logger.

    Args:
        level: Console level name, e.g. ``INFO``.
        action: CLI command name; names the log file as
            ``<log_dir>/<action>/<action>_<mmddHHMMSS>.log``.
        log_to_file: Mirror every record, DEBUG included, to the log file.
        log_dir: Base directory for log files.
        extra_loggers: Other logger names (e.g. `SERVER_LOGGERS`) that
            should share the same handlers instead of their own config.
    """
    console_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    formatter = _AbbrevLevelFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if log_to_file and action:
        file_handler = logging.FileHandler(_log_file(log_dir, action), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logger_level = logging.DEBUG if log_to_file else console_level
    for logger in (log, *(logging.getLogger(name) for name in extra_loggers)):
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.setLevel(logger_level)
        logger.propagate = False

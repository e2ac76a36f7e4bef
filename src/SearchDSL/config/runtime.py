"""``log`` section: verbosity, log files and HTTP access logging."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchDSL.config.common import expect_bool, expect_str, get_required_value, get_section

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Logging settings.

    Attributes:
        level: Console level; the log file always records DEBUG.
        to_file: Mirror logs to ``<dir>/<command>/``.
        dir: Base directory for log files.
        access_log: Emit one line per HTTP request while serving.
    """

    level: str
    to_file: bool
    dir: str
    access_log: bool = True


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    """Read the ``log`` section; ``access_log`` is optional and defaults on.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If the section or a required key is missing.
    """
    section = get_section(raw, "log", required=True)
    access_log = section.get("access_log")
    return RuntimeConfig(
        level=expect_str(get_required_value(section, "level", "log.level"), "log.level").upper(),
        to_file=expect_bool(get_required_value(section, "to_file", "log.to_file"), "log.to_file"),
        dir=expect_str(get_required_value(section, "dir", "log.dir"), "log.dir"),
        access_log=True if access_log is None else expect_bool(access_log, "log.access_log"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    if config.level not in LOG_LEVELS:
        raise ValueError(f"log.level must be one of {list(LOG_LEVELS)}, got {config.level!r}")
    if config.to_file and not config.dir.strip():
        raise ValueError("log.dir must not be empty when log.to_file is true")

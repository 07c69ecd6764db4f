"""Logging for JobSearch commands.

All modules log through ``log``. CLI actions call ``configure_logging`` once
to attach a console handler and, optionally, a per-action DEBUG file that
keeps full plan and execution traces.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Final, Iterable

if TYPE_CHECKING:
    from JobSearch.config.runtime import RuntimeConfig

_SHORT_LEVELS: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "CRIT",
}

_FORMAT: Final = "%(asctime)s [%(shortlevel)s] %(message)s"
_DATEFMT: Final = "%m-%d %H:%M:%S"


class _ShortLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        record.shortlevel = _SHORT_LEVELS.get(record.levelno, record.levelname[:4])
        return super().format(record)


log = logging.getLogger("JobSearch")


def _action_log_path(log_dir: str, action: str) -> Path:
    folder = Path(log_dir or "log") / action
    folder.mkdir(parents=True, exist_ok=True)
    return folder / f"{action}_{datetime.now():%m%d%H%M%S}.log"


def configure_logging(runtime: RuntimeConfig, action: str | None = None) -> None:
    """Attach handlers to the JobSearch logger for one CLI action.

    Console output follows ``runtime.level``. When ``runtime.to_file`` is set
    and an action is given, everything down to DEBUG is also written to
    ``<runtime.dir>/<action>/<action>_<timestamp>.log``.

    Calling it again replaces the previous handlers.
    """
    console_level = runtime.level_number
    formatter = _ShortLevelFormatter(fmt=_FORMAT, datefmt=_DATEFMT)

    reset_logging()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)
    log.addHandler(console)

    if runtime.to_file and action:
        file_handler = logging.FileHandler(_action_log_path(runtime.dir, action), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    log.setLevel(min(logging.DEBUG, console_level))
    log.propagate = False


def reset_logging() -> None:
    """Close and detach every handler and hand records back to the root logger."""
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    log.propagate = True


def log_lines(level: int, header: str, lines: Iterable[str]) -> None:
    """Log ``header`` followed by each of ``lines`` indented, at one level."""
    if not log.isEnabledFor(level):
        return
    log.log(level, header)
    for line in lines:
        log.log(level, "  %s", line)

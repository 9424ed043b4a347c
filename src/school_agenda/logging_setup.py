# src/school_agenda/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - school_agenda logs pass, except the unattended backup loop (WARNING+)
    - everything else, captured warnings included, only at ERROR+
    """

    quiet_prefixes: tuple[str, ...] = ("school_agenda.backup.background",)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("school_agenda."):
            return record.levelno >= logging.ERROR
        if name.startswith(self.quiet_prefixes):
            return record.levelno >= logging.WARNING
        return True


LOG_FILE_NAME = "agenda.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Request lines from the remote backup client are only useful when debugging it.
_CHATTY_LIBRARIES = ("httpx", "httpcore")


def _attach(root: logging.Logger, handler: logging.Handler, level: int, fmt: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    root.addHandler(handler)


def setup_logging(
    *,
    log_dir: str | Path = ".local/agenda",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route every record to <log_dir>/agenda.log and a filtered subset to stderr.

    Existing root handlers are replaced, so calling it twice does not
    duplicate output. Returns the log file path.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.addFilter(_ConsoleNoiseFilter())
    _attach(root, console, console_level, fmt)
    _attach(root, logging.FileHandler(str(log_file), encoding="utf-8"), file_level, fmt)

    logging.captureWarnings(True)
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file

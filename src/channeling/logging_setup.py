# src/channeling/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "channeling.log"

# Console floor per logger prefix; first match wins, anything unlisted needs ERROR.
# Engine and store decisions (reaction -> task, status changes) stay visible at INFO,
# while the Matrix thread only speaks up when something goes wrong.
CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("channeling.connectors.matrix_", logging.WARNING),
    ("channeling.tracking.db", logging.WARNING),
    ("channeling.tracking.", logging.INFO),
    ("channeling.", logging.NOTSET),
)

# Third-party loggers that are chatty at DEBUG even in the file log.
LIBRARY_LEVELS: dict[str, int] = {
    "aiosqlite": logging.INFO,  # one record per statement at DEBUG
    "nio": logging.INFO,
}


def resolve_level(name: str | int, default: int = logging.INFO) -> int:
    """"debug" / "INFO" / 20 -> logging level; unknown names fall back to default."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def setup_logging(*, log_dir: str | Path = ".local/channeling", level: str | int = "INFO") -> Path:
    """
    Install a filtered stderr handler and a file handler under log_dir.

    `level` (CHANNELING_LOG_LEVEL) applies to both; the console additionally
    goes through the per-logger floors above. Returns the log file path.
    Call once, before the first log record.
    """
    threshold = resolve_level(level)

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(threshold)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(threshold)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(threshold)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    for name, floor in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(max(threshold, floor))

    return log_file

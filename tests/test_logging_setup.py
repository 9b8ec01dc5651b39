# tests/test_logging_setup.py

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from channeling.logging_setup import LOG_FILE_NAME, _ConsoleNoiseFilter, resolve_level, setup_logging


@pytest.fixture()
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    library_levels = {n: logging.getLogger(n).level for n in ("aiosqlite", "nio")}
    try:
        yield
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            if h not in handlers:
                h.close()
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)
        for name, lvl in library_levels.items():
            logging.getLogger(name).setLevel(lvl)
        logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("channeling.cli.commands", logging.DEBUG, True),
        ("channeling.tracking.engine", logging.INFO, True),
        ("channeling.tracking.engine", logging.DEBUG, False),
        ("channeling.tracking.task_store", logging.INFO, True),
        ("channeling.tracking.db", logging.INFO, False),
        ("channeling.connectors.matrix_connector", logging.INFO, False),
        ("channeling.connectors.matrix_client", logging.WARNING, True),
        ("channeling.connectors.console_connector", logging.INFO, True),
        ("nio.rooms", logging.WARNING, False),
        ("py.warnings", logging.WARNING, False),
        ("aiosqlite", logging.ERROR, True),
    ],
)
def test_console_filter_floors(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_resolve_level() -> None:
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" WARNING ") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("chatty") == logging.INFO
    assert resolve_level("chatty", default=logging.WARNING) == logging.WARNING


def test_setup_logging_uses_configured_level_for_both_handlers(tmp_path: Path, restore_root_logging: None) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", level="warning")

    assert log_file == tmp_path / "logs" / LOG_FILE_NAME
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert {h.level for h in root.handlers} == {logging.WARNING}
    assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
    assert logging.getLogger("aiosqlite").level == logging.WARNING


def test_setup_logging_keeps_statement_logs_out_at_debug(tmp_path: Path, restore_root_logging: None) -> None:
    log_file = setup_logging(log_dir=tmp_path, level="DEBUG")

    assert logging.getLogger("aiosqlite").level == logging.INFO
    assert logging.getLogger("nio").level == logging.INFO

    logging.getLogger("channeling.tracking.engine").debug("engine detail")
    logging.getLogger("aiosqlite").debug("executing SELECT 1")
    for h in logging.getLogger().handlers:
        h.flush()

    text = log_file.read_text("utf-8")
    assert "engine detail" in text
    assert "SELECT 1" not in text

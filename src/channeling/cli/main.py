# src/channeling/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, initializes the database, then starts connectors:
- console REPL in the main thread (optional),
- Matrix connector in a background thread (optional).
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from typing import TYPE_CHECKING

from ..cli.bootstrap import create_initial_state, initialize_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..errors import PersistenceError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..connectors.matrix_connector import MatrixBackgroundRunner


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, level=settings.log_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(initialize_state(state))
    except PersistenceError:
        logger.exception("Database initialization failed (%s).", settings.database_file)
        raise SystemExit(1)

    matrix_runner: MatrixBackgroundRunner | None = None
    if settings.matrix_enabled:
        from ..connectors.matrix_connector import start_matrix_in_background

        matrix_runner = start_matrix_in_background(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running background connectors only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if matrix_runner is not None:
            matrix_runner.stop()
            matrix_runner.join(timeout=10.0)

        logger.info("Bye.")


if __name__ == "__main__":
    main()

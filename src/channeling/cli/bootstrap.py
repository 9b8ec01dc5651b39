# src/channeling/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the database and stores into AppState,
- initializes the schema in one explicit step,
- builds a TrackingEngine for each connector (its own context + publisher).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import MessageContext, ViewPublisher
from ..core.state import AppState
from ..tracking.db import Database
from ..tracking.engine import TrackingEngine
from ..tracking.status_store import StatusStore
from ..tracking.task_store import TaskStore
from ..views.assembler import ViewAssembler

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.matrix_store_path.mkdir(parents=True, exist_ok=True)
    settings.database_file.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    Stores are constructed but not initialized; call initialize_state() once.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = Database(settings.database_file)
    return AppState(
        settings=settings,
        db=db,
        status_store=StatusStore(db),
        task_store=TaskStore(db),
    )


async def initialize_state(state: AppState) -> None:
    # status first: task.status_id references it.
    await state.status_store.initialize()
    await state.task_store.initialize()


def build_engine(
    state: AppState,
    context: MessageContext,
    publisher: ViewPublisher | None = None,
) -> TrackingEngine:
    reactions = getattr(state.settings, "reactions", None) or {}
    if not reactions:
        logger.warning("No reactions configured; reactions will never create tasks.")
    return TrackingEngine(
        state.status_store,
        state.task_store,
        ViewAssembler(context),
        reactions=reactions,
        publisher=publisher,
    )

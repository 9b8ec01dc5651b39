# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from channeling.cli.bootstrap import build_engine, create_initial_state, initialize_state
from channeling.core.state import AppState
from channeling.tracking.engine import TrackingEngine

from .fakes import FakeMessageContext, FakePublisher


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        matrix_store_path=tmp_path / "matrix_store",
        database_file=tmp_path / "channeling.sqlite3",
        reactions={"ladybug": ["bug", "qa"], "memo": ["todo"]},
        matrix_rooms=[],
        matrix_enabled=False,
    )


@pytest_asyncio.fixture()
async def state(settings: SimpleNamespace) -> AppState:
    """
    AppState on a real SQLite file with the schema initialized.

    Store correctness (foreign keys, transactions) is part of what we test,
    so there is no in-memory fake for the stores.
    """
    st = create_initial_state(settings=settings)
    await initialize_state(st)
    return st


@pytest.fixture()
def context() -> FakeMessageContext:
    return FakeMessageContext()


@pytest.fixture()
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture()
def engine(state: AppState, context: FakeMessageContext, publisher: FakePublisher) -> TrackingEngine:
    return build_engine(state, context, publisher)

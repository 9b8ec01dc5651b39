# src/channeling/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tracking.db import Database
from ..tracking.status_store import StatusStore
from ..tracking.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (config.Settings in production, SimpleNamespace in tests).
    settings: Any

    db: Database
    status_store: StatusStore
    task_store: TaskStore

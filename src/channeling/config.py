# src/channeling/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "CHANNELING"

# reaction name -> tags toggled on the reacted message
DEFAULT_REACTIONS: dict[str, list[str]] = {
    "ladybug": ["bug", "qa"],
}

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def parse_reactions(raw: str | None) -> dict[str, list[str]]:
    """
    Parse "ladybug=bug,qa; memo=todo" into {"ladybug": ["bug", "qa"], "memo": ["todo"]}.

    Entries without a name or without tags are skipped.
    """
    if raw is None or raw.strip() == "":
        return {k: list(v) for k, v in DEFAULT_REACTIONS.items()}

    out: dict[str, list[str]] = {}
    for entry in raw.split(";"):
        name, sep, tags_raw = entry.partition("=")
        name = name.strip().strip(":")
        if not sep or not name:
            continue
        tags: list[str] = []
        for t in tags_raw.split(","):
            t = t.strip()
            if t and t not in tags:
                tags.append(t)
        if tags:
            out[name] = tags
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool
    matrix_enabled: bool

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: list[str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    matrix_store_path: Path
    database_file: Path

    # ---- Tracking ----
    reactions: dict[str, list[str]]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "channeling") or "channeling"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)

        matrix_homeserver = (_first_env(_k("MATRIX_HOMESERVER"), "MATRIX_HOMESERVER", default="") or "").strip()
        matrix_user_id = (_first_env(_k("MATRIX_USER_ID"), "MATRIX_USER_ID", default="") or "").strip()
        matrix_password = (_first_env(_k("MATRIX_PASSWORD"), "MATRIX_PASSWORD", default="") or "").strip()
        matrix_rooms = _env_list(_k("MATRIX_ROOMS"), _env_list("MATRIX_ROOMS", []))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/channeling"))
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")
        # DATABASE_FILE (unprefixed) is accepted for compatibility with older deployments.
        database_file = _env_path(
            _k("DATABASE_FILE"),
            _env_path("DATABASE_FILE", data_dir / "channeling.sqlite3"),
        )

        reactions = parse_reactions(os.getenv(_k("REACTIONS")))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_rooms=matrix_rooms,
            data_dir=data_dir,
            matrix_store_path=matrix_store_path,
            database_file=database_file,
            reactions=reactions,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

# src/channeling/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"


def _load_session(path: Path) -> dict[str, str]:
    data: Any = json.loads(path.read_text("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Expected JSON object")
    missing = [k for k in ("access_token", "user_id", "device_id") if not data.get(k)]
    if missing:
        raise ValueError(f"session.json is missing {', '.join(missing)}")
    return {k: str(data[k]) for k in ("access_token", "user_id", "device_id")}


def _save_session(path: Path, resp: LoginResponse) -> None:
    data = {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id}
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Not critical on Windows or restricted FS.
        logger.debug("chmod 600 failed for %s", path, exc_info=True)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Create a logged-in Matrix AsyncClient, or None if Matrix is not usable.

    The access token is persisted in <matrix_store_path>/session.json so restarts
    do not create a new device each time. That file is sensitive and lives under
    the gitignored data dir.

    Encryption is off: reactions and commands are read from unencrypted rooms only.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/channeling/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set CHANNELING_MATRIX_HOMESERVER and CHANNELING_MATRIX_USER_ID")
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = store_dir / SESSION_FILE

    client = AsyncClient(
        homeserver,
        user_id,
        config=AsyncClientConfig(encryption_enabled=False, store_sync_tokens=False),
    )

    if session_file.exists():
        try:
            session = _load_session(session_file)
        except (OSError, ValueError) as e:
            logger.warning("Failed to restore Matrix session.json, will try password login: %r", e)
        else:
            client.access_token = session["access_token"]
            client.user_id = session["user_id"]
            client.device_id = session["device_id"]
            logger.info("Matrix session restored for %s", client.user_id)
            return client

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set CHANNELING_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'channeling')} (Python)"
    logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)

    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        _save_session(session_file, resp)
        logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
    except OSError as e:
        # The client is logged in; it just has to log in again next start.
        logger.error("Failed to write Matrix session.json (%s): %r", session_file, e)

    return client

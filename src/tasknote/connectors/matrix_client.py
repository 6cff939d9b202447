# src/tasknote/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)

SESSION_FILE_NAME = "session.json"


def _read_session(path: Path) -> dict[str, str] | None:
    """Stored access token/device; None if missing or incomplete."""
    if not path.exists():
        return None
    try:
        data: Any = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Unreadable Matrix session file %s: %r", path, e)
        return None

    if not isinstance(data, dict):
        return None
    keys = ("access_token", "user_id", "device_id")
    if not all(data.get(k) for k in keys):
        logger.warning("Matrix session file %s is missing fields; ignoring it", path)
        return None
    return {k: str(data[k]) for k in keys}


def _write_session(path: Path, resp: LoginResponse) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(
        json.dumps({"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id}),
        "utf-8",
    )
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.debug("chmod failed for %s", path, exc_info=True)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Build a logged-in AsyncClient (unencrypted rooms only).

    The access token is kept in `<matrix_store_path>/session.json` so restarts
    reuse the device; the password is only needed for the first login.
    """
    homeserver = (settings.matrix_homeserver or "").strip()
    user_id = (settings.matrix_user_id or "").strip()
    password = (settings.matrix_password or "").strip()
    store_dir = Path(settings.matrix_store_path)

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set TASKNOTE_MATRIX_HOMESERVER and TASKNOTE_MATRIX_USER_ID")
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = store_dir / SESSION_FILE_NAME

    client = AsyncClient(
        homeserver,
        user_id,
        config=AsyncClientConfig(encryption_enabled=False, store_sync_tokens=False),
    )

    session = _read_session(session_file)
    if session is not None:
        client.access_token = session["access_token"]
        client.user_id = session["user_id"]
        client.device_id = session["device_id"]
        logger.info("Matrix session restored for %s", client.user_id)
        return client

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set TASKNOTE_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{settings.app_name} (Python)"
    logger.info("Logging in to Matrix (device_name=%r)...", device_name)
    resp = await client.login(password=password, device_name=device_name)

    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    _write_session(session_file, resp)
    logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
    return client

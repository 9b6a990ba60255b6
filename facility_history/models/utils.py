"""Identifier helpers shared by jobs and artifacts."""

from __future__ import annotations

import secrets
import time
import uuid


def generate_id() -> str:
    """Return a new random UUID string (v4) for export jobs."""
    return str(uuid.uuid4())


def unique_file_name(base_name: str, extension: str) -> str:
    """Return ``{base}_{epoch_ms}_{8 hex chars}{extension}``.

    Concurrent exports write into the same directory, so names combine
    the wall clock with a random suffix instead of relying on locking.
    """
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    stamp = int(time.time() * 1000)
    return f"{base_name}_{stamp}_{secrets.token_hex(4)}{extension}"

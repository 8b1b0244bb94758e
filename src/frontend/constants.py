"""Shared constants for the Textual UI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

WHATSAPP_GREEN = "#25D366"
PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = Path(os.getenv("DOPPEL_CONFIG") or PROJECT_ROOT / "config.json")

RELATIONSHIPS = ["friend", "girlfriend", "family", "colleague", "default"]
MESSAGE_LENGTHS = ["short", "medium", "long"]

STORAGE_DEFAULTS = {
    "contacts_path": "contacts.json",
    "state_path": "bot-state.json",
    "db_path": "doppel.db",
}


def storage_path(config: dict[str, Any] | None, key: str) -> Path:
    """Resolve a storage path from config.json the same way the bot does."""

    storage = (config or {}).get("storage") or {}
    raw = Path(str(storage.get(key) or STORAGE_DEFAULTS[key]))
    return raw if raw.is_absolute() else PROJECT_ROOT / raw

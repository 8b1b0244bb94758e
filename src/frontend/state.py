"""State container for config loading and dirty tracking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ConfigState:
    # config.json and contacts.json are edited together and saved together.
    data: dict[str, Any] | None = None
    contacts: dict[str, Any] | None = None
    dirty: bool = False
    error: str | None = None

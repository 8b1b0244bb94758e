"""JSON file stores for contact profiles and runtime flags.

contacts.json is edited by hand, by the config panel and by the control API;
bot-state.json holds the pause and auto-correct switches. Both are written
atomically (temp sibling + os.replace) so a crash never leaves half a file.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import time
from typing import Any, Callable, Optional

from core.identity import matches
from core.models import (
    ContactFeatures,
    ContactProfile,
    ContactStyle,
    GlobalSettings,
    NoProfile,
    ProfileFound,
    ProfileLookup,
    RuntimeFlags,
    TemporaryContext,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTACTS_DOCUMENT: dict[str, Any] = {
    "global_settings": {
        "master_switch": True,
        "default_enabled": False,
        "default_features": {"auto_reply": False, "auto_correct": False},
    },
    "contacts": {},
}

DEFAULT_STYLE = {
    "use_emojis": False,
    "message_length": "medium",
    "typos": False,
    "intimacy_level": 3,
}


def atomic_write_json(path: str, data: Any) -> None:
    """Write JSON to a temp sibling, then rename over the target."""

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _features_from(raw: Optional[dict], fallback: ContactFeatures) -> ContactFeatures:
    raw = raw or {}
    return ContactFeatures(
        auto_reply=bool(raw.get("auto_reply", fallback.auto_reply)),
        auto_correct=bool(raw.get("auto_correct", fallback.auto_correct)),
    )


def profile_from_entry(contact_id: str, entry: dict) -> ContactProfile:
    style = {**DEFAULT_STYLE, **(entry.get("style") or {})}
    memory = entry.get("memory") or []
    if isinstance(memory, str):
        memory = [memory]
    return ContactProfile(
        contact_id=contact_id,
        name=str(entry.get("name") or contact_id),
        phone_number=str(entry.get("phone_number", "")),
        enabled=bool(entry.get("enabled", False)),
        relationship=str(entry.get("relationship") or "default"),
        features=_features_from(entry.get("features"), ContactFeatures()),
        style=ContactStyle(
            use_emojis=bool(style["use_emojis"]),
            message_length=str(style["message_length"]),
            typos=bool(style["typos"]),
            intimacy_level=int(style["intimacy_level"]),
        ),
        prompt=str(entry.get("custom_prompt") or ""),
        memory=tuple(str(item) for item in memory),
    )


class JsonContactStore:
    """Implements the core ProfileStore plus the CRUD used by the control surfaces."""

    def __init__(
        self,
        path: str,
        cache_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._path = path
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._cached: Optional[dict] = None
        self._loaded_at = 0.0

    def _document(self) -> dict:
        now = self._clock()
        if self._cached is not None and now - self._loaded_at < self._cache_seconds:
            return self._cached
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
            if not isinstance(loaded, dict):
                raise ValueError("contacts root must be an object")
        except FileNotFoundError:
            LOGGER.info("Contacts file %s missing; using defaults", self._path)
            loaded = copy.deepcopy(DEFAULT_CONTACTS_DOCUMENT)
        except (json.JSONDecodeError, ValueError):
            if self._cached is not None:
                LOGGER.warning("Contacts file unreadable; keeping previous version", exc_info=True)
                return self._cached
            raise
        loaded.setdefault("global_settings", copy.deepcopy(DEFAULT_CONTACTS_DOCUMENT["global_settings"]))
        loaded.setdefault("contacts", {})
        self._cached = loaded
        self._loaded_at = now
        return loaded

    def _write(self, document: dict) -> None:
        atomic_write_json(self._path, document)
        self._cached = document
        self._loaded_at = self._clock()

    def invalidate(self) -> None:
        self._cached = None

    # ProfileStore

    def lookup(self, chat_identity: str) -> ProfileLookup:
        for contact_id, entry in self._document()["contacts"].items():
            phone = entry.get("phone_number", "")
            if phone and matches(phone, chat_identity):
                return ProfileFound(profile_from_entry(contact_id, entry))
        return NoProfile(chat_identity)

    def global_settings(self) -> GlobalSettings:
        raw = self._document()["global_settings"]
        return GlobalSettings(
            master_switch=bool(raw.get("master_switch", True)),
            default_enabled=bool(raw.get("default_enabled", False)),
            default_features=_features_from(
                raw.get("default_features"),
                ContactFeatures(auto_reply=False, auto_correct=False),
            ),
        )

    # CRUD

    def export(self) -> dict:
        return copy.deepcopy(self._document())

    def list_contacts(self) -> dict[str, dict]:
        return copy.deepcopy(self._document()["contacts"])

    def get_contact(self, contact_id: str) -> dict:
        contacts = self._document()["contacts"]
        if contact_id not in contacts:
            raise KeyError(contact_id)
        return copy.deepcopy(contacts[contact_id])

    def add_contact(self, contact_id: str, data: dict) -> dict:
        self.invalidate()
        document = copy.deepcopy(self._document())
        if contact_id in document["contacts"]:
            raise ValueError(f"Contact {contact_id} already exists")
        defaults = document["global_settings"].get("default_features", {})
        entry = {
            "enabled": bool(data.get("enabled", False)),
            "phone_number": str(data.get("phone_number", "")),
            "name": str(data.get("name") or contact_id),
            "relationship": str(data.get("relationship") or "friend"),
            "features": {
                "auto_reply": bool(defaults.get("auto_reply", False)),
                "auto_correct": bool(defaults.get("auto_correct", False)),
                **(data.get("features") or {}),
            },
            "custom_prompt": data.get("custom_prompt") or "",
            "memory": list(data.get("memory") or []),
            "keywords": list(data.get("keywords") or []),
            "style": {**DEFAULT_STYLE, **(data.get("style") or {})},
        }
        document["contacts"][contact_id] = entry
        self._write(document)
        LOGGER.info("Contact %s added", contact_id)
        return copy.deepcopy(entry)

    def update_contact(self, contact_id: str, changes: dict) -> dict:
        self.invalidate()
        document = copy.deepcopy(self._document())
        contacts = document["contacts"]
        if contact_id not in contacts:
            raise KeyError(contact_id)
        entry = contacts[contact_id]
        for key, value in changes.items():
            if key in {"features", "style"} and isinstance(value, dict):
                entry[key] = {**(entry.get(key) or {}), **value}
            else:
                entry[key] = value
        self._write(document)
        LOGGER.info("Contact %s updated", contact_id)
        return copy.deepcopy(entry)

    def toggle_contact(self, contact_id: str) -> bool:
        enabled = not self.get_contact(contact_id).get("enabled", False)
        self.update_contact(contact_id, {"enabled": enabled})
        return enabled

    def set_features(self, contact_id: str, features: dict) -> dict:
        allowed = {key: bool(value) for key, value in features.items() if key in {"auto_reply", "auto_correct"}}
        return self.update_contact(contact_id, {"features": allowed})["features"]

    def delete_contact(self, contact_id: str) -> None:
        self.invalidate()
        document = copy.deepcopy(self._document())
        if document["contacts"].pop(contact_id, None) is None:
            raise KeyError(contact_id)
        self._write(document)
        LOGGER.info("Contact %s deleted", contact_id)

    def update_global_settings(self, changes: dict) -> dict:
        self.invalidate()
        document = copy.deepcopy(self._document())
        settings = document["global_settings"]
        for key, value in changes.items():
            if key == "default_features" and isinstance(value, dict):
                settings[key] = {**(settings.get(key) or {}), **value}
            else:
                settings[key] = value
        self._write(document)
        return copy.deepcopy(settings)

    def set_master_switch(self, enabled: bool) -> None:
        self.update_global_settings({"master_switch": bool(enabled)})
        LOGGER.info("Master switch %s", "on" if enabled else "off")


def flags_to_dict(flags: RuntimeFlags) -> dict:
    context = flags.temporary_context
    return {
        "paused": flags.paused,
        "auto_correct_enabled": flags.auto_correct_enabled,
        "temporary_context": None
        if context is None
        else {
            "description": context.description,
            "set_at": context.set_at,
            "expires_at": context.expires_at,
        },
    }


def flags_from_dict(raw: dict) -> RuntimeFlags:
    context = raw.get("temporary_context")
    temporary = None
    if isinstance(context, dict) and context.get("description"):
        temporary = TemporaryContext(
            description=str(context["description"]),
            set_at=float(context.get("set_at", 0)),
            expires_at=float(context.get("expires_at", 0)),
        )
    return RuntimeFlags(
        paused=bool(raw.get("paused", False)),
        auto_correct_enabled=bool(raw.get("auto_correct_enabled", False)),
        temporary_context=temporary,
    )


class JsonRuntimeStore:
    """Implements the core RuntimeStateStore on bot-state.json."""

    def __init__(self, path: str) -> None:
        self._path = path

    def load(self) -> RuntimeFlags:
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return RuntimeFlags()
        if not isinstance(raw, dict):
            raise ValueError(f"{self._path}: expected a JSON object")
        return flags_from_dict(raw)

    def save(self, flags: RuntimeFlags) -> None:
        atomic_write_json(self._path, flags_to_dict(flags))

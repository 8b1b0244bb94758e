from __future__ import annotations

import json

import pytest

from adapters.json_store import JsonContactStore, JsonRuntimeStore, atomic_write_json
from core.models import NoProfile, ProfileFound, RuntimeFlags, TemporaryContext

DOCUMENT = {
    "global_settings": {
        "master_switch": True,
        "default_enabled": False,
        "default_features": {"auto_reply": True, "auto_correct": False},
    },
    "contacts": {
        "julie": {
            "enabled": True,
            "phone_number": "+33 6 11 11 11 11",
            "name": "Julie",
            "relationship": "girlfriend",
            "features": {"auto_reply": True, "auto_correct": True},
            "custom_prompt": "",
            "memory": ["aime le jazz"],
            "style": {"use_emojis": True, "message_length": "short", "typos": False, "intimacy_level": 9},
        }
    },
}


def _store(tmp_path, document=DOCUMENT) -> JsonContactStore:
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return JsonContactStore(str(path), cache_seconds=0)


def test_lookup_matches_transport_identity(tmp_path) -> None:
    store = _store(tmp_path)

    found = store.lookup("33611111111")
    missing = store.lookup("33699999999")

    assert isinstance(found, ProfileFound)
    assert found.profile.name == "Julie"
    assert found.profile.features.auto_correct
    assert found.profile.style.intimacy_level == 9
    assert found.profile.memory == ("aime le jazz",)
    assert missing == NoProfile("33699999999")


def test_missing_file_uses_defaults(tmp_path) -> None:
    store = JsonContactStore(str(tmp_path / "absent.json"))

    settings = store.global_settings()

    assert settings.master_switch
    assert not settings.default_enabled
    assert store.list_contacts() == {}


def test_corrupt_file_keeps_cached_copy(tmp_path) -> None:
    clock = iter([0.0, 100.0, 200.0])
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    store = JsonContactStore(str(path), cache_seconds=10, clock=lambda: next(clock))
    assert isinstance(store.lookup("33611111111"), ProfileFound)

    path.write_text("{ not json", encoding="utf-8")

    assert isinstance(store.lookup("33611111111"), ProfileFound)


def test_corrupt_file_without_cache_raises(tmp_path) -> None:
    path = tmp_path / "contacts.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        JsonContactStore(str(path)).global_settings()


def test_write_starts_from_file_not_cache(tmp_path) -> None:
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    store = JsonContactStore(str(path), cache_seconds=60, clock=lambda: 0.0)
    assert isinstance(store.lookup("33611111111"), ProfileFound)

    edited = json.loads(path.read_text(encoding="utf-8"))
    edited["contacts"]["lea"] = {"enabled": True, "phone_number": "33633333333", "name": "Léa"}
    path.write_text(json.dumps(edited), encoding="utf-8")

    store.add_contact("marc", {"name": "Marc", "phone_number": "33622222222"})

    on_disk = json.loads(path.read_text(encoding="utf-8"))["contacts"]
    assert set(on_disk) == {"julie", "lea", "marc"}


def test_contact_crud(tmp_path) -> None:
    store = _store(tmp_path)

    entry = store.add_contact("marc", {"name": "Marc", "phone_number": "33622222222"})
    assert entry["features"] == {"auto_reply": True, "auto_correct": False}
    assert not entry["enabled"]
    with pytest.raises(ValueError):
        store.add_contact("marc", {})

    assert store.toggle_contact("marc") is True
    assert store.set_features("marc", {"auto_correct": True, "bogus": True}) == {
        "auto_reply": True,
        "auto_correct": True,
    }
    store.update_contact("marc", {"style": {"use_emojis": False}})
    assert store.get_contact("marc")["style"]["intimacy_level"] == 3

    store.delete_contact("marc")
    with pytest.raises(KeyError):
        store.get_contact("marc")
    with pytest.raises(KeyError):
        store.delete_contact("marc")

    on_disk = json.loads((tmp_path / "contacts.json").read_text(encoding="utf-8"))
    assert set(on_disk["contacts"]) == {"julie"}


def test_master_switch_is_persisted(tmp_path) -> None:
    store = _store(tmp_path)

    store.set_master_switch(False)

    reread = JsonContactStore(str(tmp_path / "contacts.json"))
    assert not reread.global_settings().master_switch
    assert reread.global_settings().default_features.auto_reply


def test_runtime_store_round_trip(tmp_path) -> None:
    store = JsonRuntimeStore(str(tmp_path / "state" / "bot-state.json"))
    assert store.load() == RuntimeFlags()

    flags = RuntimeFlags(paused=True, temporary_context=TemporaryContext("réunion", 10.0, 20.0))
    store.save(flags)

    assert store.load() == flags


def test_runtime_store_rejects_corrupt_file(tmp_path) -> None:
    path = tmp_path / "bot-state.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(ValueError):
        JsonRuntimeStore(str(path)).load()

    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        JsonRuntimeStore(str(path)).load()


def test_atomic_write_leaves_no_temp_file(tmp_path) -> None:
    path = tmp_path / "out.json"

    atomic_write_json(str(path), {"é": 1})

    assert json.loads(path.read_text(encoding="utf-8")) == {"é": 1}
    assert not (tmp_path / "out.json.tmp").exists()

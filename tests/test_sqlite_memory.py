from __future__ import annotations

from adapters.sqlite_memory import SQLiteMemoryLog


def _log(tmp_path, keep: int = 50) -> SQLiteMemoryLog:
    log = SQLiteMemoryLog(str(tmp_path / "doppel.db"), keep_per_chat=keep)
    log.init_db()
    return log


def test_append_and_recent(tmp_path) -> None:
    log = _log(tmp_path)

    log.append("336111", "Salut", "Hey", "neutral", 1_700_000_000.0)
    log.append("336222", "Ça va ?", "Oui", "question", 1_700_000_010.0)

    rows = log.recent()
    assert [row["user_text"] for row in rows] == ["Ça va ?", "Salut"]
    assert rows[1]["created_at"].startswith("2023-11-14T22:13:20")
    assert log.recent("336111")[0]["reply_text"] == "Hey"


def test_each_chat_is_trimmed(tmp_path) -> None:
    log = _log(tmp_path, keep=3)

    for index in range(5):
        log.append("336111", f"m{index}", "r", "neutral", 1_700_000_000.0 + index)
    log.append("336222", "autre", "r", "neutral", 1_700_000_000.0)

    assert log.count("336111") == 3
    assert [row["user_text"] for row in log.recent("336111")] == ["m4", "m3", "m2"]
    assert log.count() == 4


def test_clear(tmp_path) -> None:
    log = _log(tmp_path)
    log.append("336111", "a", "b", "neutral", 0.0)
    log.append("336222", "a", "b", "neutral", 0.0)

    assert log.clear("336111") == 1
    assert log.clear() == 1
    assert log.count() == 0

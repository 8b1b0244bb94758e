from __future__ import annotations

from adapters.whatsapp_mapper import build_event, build_record
from core.models import Direction


def test_inbound_payload_with_serialized_id() -> None:
    event = build_event(
        {
            "id": {"_serialized": "false_33611111111@c.us_3EB0", "id": "3EB0"},
            "from": "33611111111@c.us",
            "to": "33600000000@c.us",
            "fromMe": False,
            "body": "Salut",
            "timestamp": 1_700_000_000,
            "type": "chat",
        }
    )

    assert event.candidate_ids == ("false_33611111111@c.us_3EB0", "3EB0")
    assert event.logical_id == "false_33611111111@c.us_3EB0"
    assert event.direction is Direction.INBOUND
    assert event.chat_id == "33611111111@c.us"
    assert event.chat_identity == "33611111111"
    assert event.timestamp_ms == 1_700_000_000_000
    assert not event.has_media and event.media_type is None


def test_outbound_chat_is_recipient() -> None:
    event = build_event(
        {
            "message_id": "ABC",
            "key_id": "ABC",
            "from": "33600000000@c.us",
            "to": "33611111111@c.us",
            "from_me": True,
            "content": "J'arrive",
            "timestamp": 1_700_000_000_123,
        }
    )

    assert event.candidate_ids == ("ABC",)
    assert event.from_me
    assert event.chat_id == "33611111111@c.us"
    assert event.timestamp_ms == 1_700_000_000_123


def test_media_and_group_detection() -> None:
    event = build_event(
        {
            "id": "M1",
            "from": "120363000000@g.us",
            "to": "33600000000@c.us",
            "type": "image",
            "caption": "",
        }
    )

    assert event.is_group
    assert event.has_media and event.media_type == "image"
    assert event.body == ""


def test_history_record() -> None:
    record = build_record({"id": "H1", "from": "33611111111@c.us", "body": "coucou", "timestamp": 1_700_000_000})

    assert record.logical_id == "H1"
    assert record.chat_identity == "33611111111"
    assert not record.from_me

"""WhatsApp bridge payload to core model mapping.

This keeps the bridge's JSON shape out of the core pipeline. The bridge
forwards whatsapp-web style message objects; field names vary between bridge
versions, so every known id field is collected as a candidate alias.
"""

from __future__ import annotations

import time
from typing import Any, Mapping, Optional

from core.models import Direction, MessageEvent, MessageRecord

GROUP_SUFFIX = "@g.us"

# Preference order for the logical id.
_ID_FIELDS = ("id", "message_id", "serialized_id", "key_id")


def _candidate_ids(payload: Mapping[str, Any]) -> tuple[str, ...]:
    candidates: list[str] = []
    for field_name in _ID_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, Mapping):
            # whatsapp-web.js shape: {"_serialized": "true_336...@c.us_ABC", "id": "ABC"}
            values = [value.get("_serialized"), value.get("id")]
        else:
            values = [value]
        for item in values:
            if item is None:
                continue
            text = str(item).strip()
            if text and text not in candidates:
                candidates.append(text)
    return tuple(candidates)


def _timestamp_ms(value: Any) -> int:
    if value is None or value == "":
        return int(time.time() * 1000)
    number = float(value)
    # Seconds below ~2001-09 in milliseconds; bridges send either.
    if number < 1e12:
        number *= 1000
    return int(number)


def _text(payload: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = payload.get(name)
        if value:
            return str(value)
    return ""


def build_event(payload: Mapping[str, Any]) -> MessageEvent:
    """Build a core MessageEvent from a bridge webhook payload."""

    from_me = bool(payload.get("from_me", payload.get("fromMe", payload.get("is_from_me", False))))
    sender = _text(payload, "from", "sender", "sender_jid")
    recipient = _text(payload, "to", "recipient")
    chat_id = _text(payload, "chat_id", "chat_jid")
    if not chat_id:
        chat_id = recipient if from_me else sender

    media_type: Optional[str] = _text(payload, "media_type", "type") or None
    if media_type in {"chat", "text"}:
        media_type = None
    has_media = bool(payload.get("has_media", payload.get("hasMedia", media_type is not None)))
    is_group = bool(payload.get("is_group", False)) or chat_id.endswith(GROUP_SUFFIX)

    return MessageEvent(
        candidate_ids=_candidate_ids(payload),
        chat_id=chat_id,
        sender=sender,
        recipient=recipient,
        direction=Direction.OUTBOUND if from_me else Direction.INBOUND,
        body=_text(payload, "body", "content", "caption"),
        timestamp_ms=_timestamp_ms(payload.get("timestamp")),
        has_media=has_media,
        media_type=media_type if has_media else None,
        is_group=is_group,
    )


def build_record(payload: Mapping[str, Any]) -> MessageRecord:
    """Build a MessageRecord from one entry of a history response."""

    return build_event(payload).to_record()

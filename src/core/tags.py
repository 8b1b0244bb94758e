"""Markers for bot-authored outgoing messages.

Every message the bot sends comes back through the transport as an outgoing
event. The auto-correction engine consults this tracker first so it never
edits the bot's own replies.
"""

from __future__ import annotations

from core.dedup import BoundedIdSet, compute_fingerprint


class ResponseTagTracker:
    """Single-use tags keyed by message id, plus pending body fingerprints.

    The echo of a sent message can arrive before the send call returns its
    id, so callers register ``expect(chat, text)`` before sending and
    ``tag(message_id)`` after.
    """

    def __init__(self, capacity: int = 500) -> None:
        self._capacity = capacity
        self._ids = BoundedIdSet(capacity)
        self._pending = BoundedIdSet(capacity)

    def tag(self, logical_id: str) -> None:
        if logical_id:
            self._ids.add(logical_id)

    def consume_if_tagged(self, logical_id: str) -> bool:
        ids = self._ids
        if logical_id and logical_id in ids:
            ids.discard(logical_id)
            return True
        return False

    def expect(self, chat_identity: str, text: str) -> None:
        self._pending.add(compute_fingerprint(chat_identity, text))

    def consume_pending(self, chat_identity: str, text: str) -> bool:
        pending = self._pending
        fingerprint = compute_fingerprint(chat_identity, text)
        if fingerprint in pending:
            pending.discard(fingerprint)
            return True
        return False

    def clear(self) -> None:
        self._ids = BoundedIdSet(self._capacity)
        self._pending = BoundedIdSet(self._capacity)

    def __len__(self) -> int:
        return len(self._ids)

    def consume_bot_message(self, logical_id: str, chat_identity: str, text: str) -> bool:
        """Consume both markers of an echoed bot message."""

        by_id = self.consume_if_tagged(logical_id)
        by_body = self.consume_pending(chat_identity, text)
        return by_id or by_body

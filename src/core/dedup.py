"""Deduplication helpers (core domain)."""

from __future__ import annotations

import hashlib
import logging
import re
from collections import OrderedDict
from typing import Iterable

LOGGER = logging.getLogger(__name__)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_for_fingerprint(text: str) -> str:
    """Normalize text for deterministic fingerprinting."""

    return _collapse_whitespace(text).lower()


def compute_fingerprint(chat_identity: str, text: str) -> str:
    """Return a per-chat hash of a message body."""

    payload = f"{chat_identity}\n{normalize_for_fingerprint(text)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class BoundedIdSet:
    """Insertion-ordered id set that evicts its oldest entries past capacity."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._members: OrderedDict[str, None] = OrderedDict()

    def __contains__(self, item: object) -> bool:
        return item in self._members

    def __len__(self) -> int:
        return len(self._members)

    def add(self, item: str) -> None:
        if item in self._members:
            return
        self._members[item] = None
        while len(self._members) > self._capacity:
            self._members.popitem(last=False)

    def discard(self, item: str) -> None:
        self._members.pop(item, None)


class MessageDeduplicator:
    """Collapse overlapping transport events into one logical message.

    ``should_process`` never awaits, so check-and-record is atomic with
    respect to other handlers on the event loop.
    """

    def __init__(self, capacity: int = 5000) -> None:
        self._capacity = capacity
        self._seen = BoundedIdSet(capacity)

    def should_process(self, candidate_ids: Iterable[str]) -> bool:
        candidates = [candidate for candidate in candidate_ids if candidate]
        if not candidates:
            # Nothing to key on; let it through rather than drop real traffic.
            return True
        seen = self._seen
        if any(candidate in seen for candidate in candidates):
            LOGGER.debug("Duplicate delivery for %s", candidates[0])
            return False
        # Every alias is recorded so a later event exposing only a secondary
        # field is still recognized.
        for candidate in candidates:
            seen.add(candidate)
        return True

    def clear(self) -> None:
        self._seen = BoundedIdSet(self._capacity)

    def __len__(self) -> int:
        return len(self._seen)

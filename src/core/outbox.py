"""Outgoing message helper that marks every bot-authored send."""

from __future__ import annotations

import logging

from core.identity import normalize
from core.models import SentMessageRef
from core.ports import TransportPort
from core.tags import ResponseTagTracker

LOGGER = logging.getLogger(__name__)


class TaggedSender:
    """Send through the transport and tag the result for the correction engine."""

    def __init__(self, transport: TransportPort, tags: ResponseTagTracker) -> None:
        self._transport = transport
        self._tags = tags

    async def send(self, chat_id: str, text: str) -> SentMessageRef:
        # Registered first: the echo event may beat the send response.
        self._tags.expect(normalize(chat_id), text)
        ref = await self._transport.send_text(chat_id, text)
        self._tags.tag(ref.message_id)
        LOGGER.debug("Sent %s to %s", ref.message_id, chat_id)
        return ref

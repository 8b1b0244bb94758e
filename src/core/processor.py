"""Core message processing pipeline.

This module is integration-agnostic. It only relies on ports for the
transport, language model and storage, enabling other bridges or frontends
without changes here.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from core.assistant import AssistantResponder
from core.commands import CommandRouter, parse
from core.config import CommandConfig
from core.correction import AutoCorrectionEngine
from core.dedup import MessageDeduplicator
from core.models import AdminCommand, AssistantQuery, MessageEvent
from core.outbox import TaggedSender
from core.pacing import ConversationPhaseScheduler
from core.replies import AutoReplyOrchestrator
from core.tags import ResponseTagTracker

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Routes each transport event to commands, correction or auto-reply."""

    def __init__(
        self,
        deduplicator: MessageDeduplicator,
        commands: CommandConfig,
        router: CommandRouter,
        assistant: AssistantResponder,
        correction: AutoCorrectionEngine,
        replies: AutoReplyOrchestrator,
        sender: TaggedSender,
        excuses: tuple[str, ...],
        scheduler: Optional[ConversationPhaseScheduler] = None,
        tags: Optional[ResponseTagTracker] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._dedup = deduplicator
        self._commands = commands
        self._router = router
        self._assistant = assistant
        self._correction = correction
        self._replies = replies
        self._sender = sender
        self._excuses = excuses
        self._scheduler = scheduler
        self._tags = tags
        self._rng = rng or random.Random()

    async def handle(self, event: MessageEvent) -> None:
        """Process one transport event. Never raises."""

        # Recorded before any side effect so an overlapping delivery of the
        # same message is rejected even while this one is still sleeping.
        if not self._dedup.should_process(event.candidate_ids):
            return

        try:
            await self._route(event)
        except Exception:
            LOGGER.exception("Error while processing message %s", event.logical_id)
            await self._send_excuse(event)

    async def _route(self, event: MessageEvent) -> None:
        parsed = parse(event, self._commands)
        if isinstance(parsed, AdminCommand):
            await self._router.execute(event, parsed)
            return
        if isinstance(parsed, AssistantQuery):
            await self._assistant.answer(event, parsed)
            return

        if event.from_me:
            outcome = await self._correction.maybe_correct(event)
            if outcome.kind == "failed":
                LOGGER.info("Correction of %s not applied: %s", event.logical_id, outcome.reason)
            return

        await self._replies.handle_inbound(event)

    async def _send_excuse(self, event: MessageEvent) -> None:
        # Only a contact should ever see the excuse.
        if event.from_me or event.is_group or not self._excuses:
            return
        try:
            await self._sender.send(event.chat_id, self._rng.choice(self._excuses))
        except Exception:
            LOGGER.exception("Failed to send excuse to %s", event.chat_identity)

    def sweep(self) -> None:
        """Drop all dedup, pacing and tag state."""

        self._dedup.clear()
        if self._scheduler is not None:
            self._scheduler.reset()
        if self._tags is not None:
            self._tags.clear()
        LOGGER.info("Periodic sweep cleared tracking state")

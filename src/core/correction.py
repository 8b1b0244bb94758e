"""Auto-correction of the owner's outgoing messages.

The owner's own messages come back as outgoing events. When correction is
enabled for the recipient, a language model judges the text and, if it is
confident enough, the already-sent message is edited in place.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from core.config import CommandConfig, CorrectionConfig
from core.errors import EditWindowExpired, OracleError, TransportError
from core.models import (
    CorrectionOutcome,
    MessageEvent,
    MessageRecord,
    NoProfile,
    ProfileFound,
    SentMessageRef,
    TypoVerdict,
)
from core.ports import CompletionOracle, ProfileStore, TransportPort
from core.runtime import RuntimeState
from core.tags import ResponseTagTracker

LOGGER = logging.getLogger(__name__)


def accepts(verdict: TypoVerdict, original: str, min_confidence: int) -> bool:
    corrected = verdict.corrected_text.strip()
    return (
        verdict.has_typos
        and verdict.confidence > min_confidence
        and bool(corrected)
        and corrected != original.strip()
    )


class AutoCorrectionEngine:
    def __init__(
        self,
        oracle: CompletionOracle,
        transport: TransportPort,
        profiles: ProfileStore,
        runtime: RuntimeState,
        tags: ResponseTagTracker,
        config: CorrectionConfig,
        commands: CommandConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._oracle = oracle
        self._transport = transport
        self._profiles = profiles
        self._runtime = runtime
        self._tags = tags
        self._config = config
        self._commands = commands
        self._clock = clock

    def is_enabled_for(self, chat_identity: str) -> bool:
        """Recipient profile wins; otherwise the global default applies."""

        lookup = self._profiles.lookup(chat_identity)
        if isinstance(lookup, ProfileFound):
            return lookup.profile.features.auto_correct
        if isinstance(lookup, NoProfile):
            defaults = self._profiles.global_settings().default_features
            return defaults.auto_correct or self._runtime.auto_correct_enabled
        raise TypeError(f"Unsupported profile lookup: {lookup!r}")

    def _exclusion(self, event: MessageEvent) -> str:
        body = (event.body or "").strip()
        lowered = body.lower()
        commands = self._commands
        # Always consulted so the single-use tag is released.
        if self._tags.consume_bot_message(event.logical_id, event.chat_identity, event.body or ""):
            return "bot-authored"
        if lowered.startswith(commands.command_prefix.lower()):
            return "command"
        if lowered.startswith(commands.assistant_prefix.lower()) or body.startswith(commands.assistant_marker):
            return "assistant"
        if event.is_group:
            return "group"
        if len(body) < self._config.min_length:
            return "too short"
        return ""

    def _within_window(self, event: MessageEvent) -> bool:
        age = self._clock() - event.timestamp_ms / 1000
        return age <= self._config.edit_window_seconds

    async def _context(self, event: MessageEvent) -> list[MessageRecord]:
        limit = self._config.context_messages
        if limit <= 0:
            return []
        try:
            records = await self._transport.fetch_recent_messages(event.chat_id, limit=limit * 2)
        except TransportError:
            LOGGER.warning("Context fetch failed for %s", event.chat_identity, exc_info=True)
            return []
        earlier = sorted(
            (
                record
                for record in records
                if record.timestamp_ms < event.timestamp_ms and record.logical_id != event.logical_id
            ),
            key=lambda record: record.timestamp_ms,
        )
        return earlier[-limit:]

    async def maybe_correct(self, event: MessageEvent) -> CorrectionOutcome:
        reason = self._exclusion(event)
        if reason:
            LOGGER.debug("Correction skipped for %s: %s", event.logical_id, reason)
            return CorrectionOutcome.none(reason)
        if not self.is_enabled_for(event.chat_identity):
            return CorrectionOutcome.none("disabled")
        if not self._within_window(event):
            return CorrectionOutcome.none("too old")

        original = event.body.strip()
        context = await self._context(event)
        try:
            verdict = await self._oracle.check_typos(original, context)
        except OracleError:
            LOGGER.warning("Typo check failed for %s", event.logical_id, exc_info=True)
            return CorrectionOutcome.none("oracle failure")

        if not accepts(verdict, original, self._config.min_confidence):
            LOGGER.debug(
                "No correction for %s (typos=%s, confidence=%s)",
                event.logical_id,
                verdict.has_typos,
                verdict.confidence,
            )
            return CorrectionOutcome.none("no confident correction")

        corrected = verdict.corrected_text.strip()
        if not self._within_window(event):
            LOGGER.info("Edit window closed for %s", event.logical_id)
            return CorrectionOutcome.failed("edit window expired")

        ref = SentMessageRef(
            message_id=event.logical_id,
            chat_id=event.chat_id,
            sent_at_ms=event.timestamp_ms,
        )
        try:
            edited = await self._transport.edit_message(ref, corrected)
        except EditWindowExpired:
            LOGGER.info("Edit window expired for %s", event.logical_id)
            return CorrectionOutcome.failed("edit window expired")
        except TransportError as exc:
            LOGGER.warning("Edit failed for %s: %s", event.logical_id, exc)
            return CorrectionOutcome.failed("transport error")

        if not edited:
            LOGGER.info("Editing unavailable for %s", event.logical_id)
            return CorrectionOutcome.failed("edit unavailable")

        LOGGER.info(
            "Corrected %s (confidence %s): %r -> %r",
            event.logical_id,
            verdict.confidence,
            original,
            corrected,
        )
        return CorrectionOutcome.applied(corrected)

"""Auto-reply orchestration for inbound messages."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from core.config import ReplyConfig
from core.errors import OracleError, TransportError
from core.models import (
    ChatTurn,
    GlobalSettings,
    MessageEvent,
    NoProfile,
    ProfileFound,
    ProfileLookup,
)
from core.outbox import TaggedSender
from core.pacing import ConversationPhaseScheduler
from core.ports import CompletionOracle, MemoryLog, ProfileStore, TransportPort
from core.prompts import build_reply_prompt
from core.runtime import RuntimeState
from core.sentiment import classify

LOGGER = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def reply_enabled(lookup: ProfileLookup, settings: GlobalSettings) -> bool:
    if isinstance(lookup, ProfileFound):
        profile = lookup.profile
        return profile.enabled and profile.features.auto_reply
    if isinstance(lookup, NoProfile):
        return settings.default_enabled
    raise TypeError(f"Unsupported profile lookup: {lookup!r}")


class AutoReplyOrchestrator:
    def __init__(
        self,
        oracle: CompletionOracle,
        transport: TransportPort,
        sender: TaggedSender,
        profiles: ProfileStore,
        runtime: RuntimeState,
        scheduler: ConversationPhaseScheduler,
        memory: Optional[MemoryLog],
        config: ReplyConfig,
        rng: Optional[random.Random] = None,
        sleep: Sleeper = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._oracle = oracle
        self._transport = transport
        self._sender = sender
        self._profiles = profiles
        self._runtime = runtime
        self._scheduler = scheduler
        self._memory = memory
        self._config = config
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._now = now

    def _gate(self, event: MessageEvent) -> Optional[ProfileLookup]:
        """Return the profile lookup when a reply is allowed, else None."""

        if event.is_group:
            LOGGER.debug("Group message ignored")
            return None
        if self._runtime.paused:
            LOGGER.debug("Paused; no reply to %s", event.chat_identity)
            return None
        settings = self._profiles.global_settings()
        if not settings.master_switch:
            LOGGER.debug("Master switch off; no reply to %s", event.chat_identity)
            return None
        lookup = self._profiles.lookup(event.chat_identity)
        if not reply_enabled(lookup, settings):
            LOGGER.debug("Auto-reply disabled for %s", event.chat_identity)
            return None
        return lookup

    async def handle_inbound(self, event: MessageEvent) -> bool:
        """Reply to one inbound message. Returns True when something was sent."""

        lookup = self._gate(event)
        if lookup is None:
            return False

        body = (event.body or "").strip()
        if not body:
            if event.has_media:
                return await self._react_to_media(event)
            return False

        sentiment = classify(body)
        context = self._runtime.active_context()
        context_text = context.description if context else None
        prompt = build_reply_prompt(
            self._config.owner_name,
            lookup,
            sentiment,
            self._now(),
            context_text,
        )
        history = await self._history(event)

        try:
            completion = await self._oracle.complete(prompt, history, body)
        except OracleError:
            LOGGER.warning("Reply completion failed for %s", event.chat_identity, exc_info=True)
            return await self._deliver(event, self._config.fallback_message)
        reply = completion.text.strip()
        if not reply:
            LOGGER.warning("Empty completion for %s", event.chat_identity)
            return await self._deliver(event, self._config.fallback_message)

        delay = self._scheduler.compute_delay(event.chat_identity, len(reply))
        delay = self._scheduler.apply_context_floor(delay, context_text)
        LOGGER.info(
            "Replying to %s in %.1fs + %.1fs typing (%s)",
            event.chat_identity,
            delay.thinking_seconds,
            delay.typing_seconds,
            delay.phase.value,
        )

        await self._sleep(delay.thinking_seconds)
        await self._typing(event.chat_id, delay.typing_seconds)
        if not await self._deliver(event, reply):
            return False
        self._remember(event, body, reply, sentiment)
        return True

    async def _deliver(self, event: MessageEvent, text: str) -> bool:
        try:
            await self._sender.send(event.chat_id, text)
        except TransportError:
            LOGGER.warning("Failed to send reply to %s", event.chat_identity, exc_info=True)
            return False
        return True

    async def _typing(self, chat_id: str, seconds: float) -> None:
        try:
            await self._transport.start_typing(chat_id)
        except TransportError:
            LOGGER.debug("Typing indicator unavailable", exc_info=True)
        try:
            await self._sleep(seconds)
        finally:
            try:
                await self._transport.stop_typing(chat_id)
            except TransportError:
                LOGGER.debug("Typing indicator unavailable", exc_info=True)

    async def _history(self, event: MessageEvent) -> list[ChatTurn]:
        try:
            records = await self._transport.fetch_recent_messages(
                event.chat_id, limit=self._config.history_fetch
            )
        except TransportError:
            LOGGER.warning("History fetch failed for %s", event.chat_identity, exc_info=True)
            return []
        earlier = sorted(
            (
                record
                for record in records
                if record.timestamp_ms <= event.timestamp_ms and record.logical_id != event.logical_id
            ),
            key=lambda record: record.timestamp_ms,
        )
        window = earlier[-self._config.history_window:] if self._config.history_window else []
        return [
            ChatTurn(role="assistant" if record.from_me else "user", content=record.body)
            for record in window
            if record.body
        ]

    async def _react_to_media(self, event: MessageEvent) -> bool:
        reactions = self._config.media_reactions
        pool = reactions.get(event.media_type or "") or reactions.get("default")
        if not pool:
            return False
        await self._sleep(self._config.media_reaction_delay_seconds)
        return await self._deliver(event, self._rng.choice(list(pool)))

    def _remember(self, event: MessageEvent, body: str, reply: str, sentiment: str) -> None:
        if self._memory is None:
            return
        try:
            self._memory.append(event.chat_identity, body, reply, sentiment, time.time())
        except Exception:
            LOGGER.warning("Failed to record exchange for %s", event.chat_identity, exc_info=True)

"""Direct assistant queries ("paf <question>")."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from core.config import CommandConfig, ReplyConfig
from core.errors import OracleError, TransportError
from core.models import AssistantQuery, ChatTurn, MessageEvent
from core.outbox import TaggedSender
from core.ports import CompletionOracle, TransportPort
from core.prompts import build_assistant_prompt

LOGGER = logging.getLogger(__name__)

ASSISTANT_TOOLS = ("web_search",)
ERROR_REPLY = "Désolé, je n'ai pas pu traiter ta demande. Réessaie plus tard."


class AssistantResponder:
    def __init__(
        self,
        oracle: CompletionOracle,
        transport: TransportPort,
        sender: TaggedSender,
        commands: CommandConfig,
        replies: ReplyConfig,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._oracle = oracle
        self._transport = transport
        self._sender = sender
        self._commands = commands
        self._replies = replies
        self._now = now

    async def _history(self, event: MessageEvent) -> list[ChatTurn]:
        try:
            records = await self._transport.fetch_recent_messages(event.chat_id, limit=10)
        except TransportError:
            LOGGER.warning("History fetch failed for %s", event.chat_identity, exc_info=True)
            return []
        earlier = sorted(
            (record for record in records if record.timestamp_ms < event.timestamp_ms),
            key=lambda record: record.timestamp_ms,
        )
        window = earlier[-self._replies.assistant_history:] if self._replies.assistant_history else []
        return [
            ChatTurn(role="assistant" if record.from_me else "user", content=record.body)
            for record in window
            if record.body
        ]

    async def answer(self, event: MessageEvent, query: AssistantQuery) -> None:
        question = query.question.strip()
        if not question:
            LOGGER.debug("Empty assistant query ignored")
            return

        LOGGER.info("Assistant query in %s", event.chat_identity)
        history = await self._history(event)
        try:
            await self._transport.start_typing(event.chat_id)
        except TransportError:
            LOGGER.debug("Typing indicator unavailable", exc_info=True)

        try:
            completion = await self._oracle.complete(
                build_assistant_prompt(self._now(), ASSISTANT_TOOLS),
                history,
                question,
                tools=ASSISTANT_TOOLS,
            )
            text = completion.text.strip() or ERROR_REPLY
            if completion.tool_invocations:
                LOGGER.info("Assistant used tools: %s", ", ".join(completion.tool_invocations))
        except OracleError:
            LOGGER.warning("Assistant completion failed", exc_info=True)
            text = ERROR_REPLY
        finally:
            try:
                await self._transport.stop_typing(event.chat_id)
            except TransportError:
                LOGGER.debug("Typing indicator unavailable", exc_info=True)

        try:
            await self._sender.send(event.chat_id, f"{self._commands.assistant_marker} {text}")
        except TransportError:
            LOGGER.warning("Failed to send assistant answer to %s", event.chat_identity, exc_info=True)

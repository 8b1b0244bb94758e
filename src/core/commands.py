"""Command & control surface.

Two channels are recognized:

- the assistant prefix ("paf ...") in any chat and any direction;
- administrative verbs in outgoing, non-group messages that are either
  self-addressed or start with the command prefix ("bot ...").

Anything else returns ``None`` and continues through normal handling.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from core.config import CommandConfig
from core.errors import TransportError
from core.identity import matches, matches_any
from core.models import AdminCommand, AssistantQuery, MessageEvent, ParsedCommand
from core.outbox import TaggedSender
from core.runtime import RuntimeState

LOGGER = logging.getLogger(__name__)

_VERB_ALIASES = {
    "pause": "pause",
    "stop": "pause",
    "resume": "resume",
    "start": "resume",
    "status": "status",
    "help": "help",
    "aide": "help",
}

HELP_TEXT = (
    "Commandes :\n"
    "• bot pause / bot stop : met le bot en pause\n"
    "• bot resume / bot start : relance le bot\n"
    "• bot status : état actuel\n"
    "• bot context <texte> : contexte temporaire\n"
    "• bot context clear : efface le contexte\n"
    "• paf <question> : question directe à l'assistant\n"
    "• bot help : cette aide"
)


def is_self_addressed(event: MessageEvent, owner_numbers: tuple[str, ...] = ()) -> bool:
    """True for outgoing messages whose recipient is the owner."""

    if not event.from_me:
        return False
    if matches(event.recipient, event.sender):
        return True
    return matches_any(event.recipient, owner_numbers)


def _strip_prefix(text: str, prefix: str) -> Optional[str]:
    if prefix and text.lower().startswith(prefix.lower()):
        return text[len(prefix):].strip()
    return None


def _parse_admin(text: str, assistant_word: str) -> Optional[ParsedCommand]:
    parts = text.split(maxsplit=1)
    if not parts:
        return None
    verb = parts[0].lower()
    rest = parts[1].strip() if len(parts) > 1 else ""

    if verb in _VERB_ALIASES and not rest:
        return AdminCommand(_VERB_ALIASES[verb])
    if verb in {"context", "contexte"}:
        if rest.lower() in {"clear", "off", "effacer"}:
            return AdminCommand("context_clear")
        if rest.lower().startswith("set "):
            rest = rest[4:].strip()
        if rest:
            return AdminCommand("context_set", rest)
        return None
    # Legacy alias: "bot paf <question>".
    if verb == assistant_word and rest:
        return AssistantQuery(rest)
    return None


def parse(event: MessageEvent, config: CommandConfig) -> Optional[ParsedCommand]:
    body = (event.body or "").strip()
    if not body:
        return None

    question = _strip_prefix(body, config.assistant_prefix)
    if question is not None:
        return AssistantQuery(question)

    if not event.from_me or event.is_group:
        return None

    admin_text = _strip_prefix(body, config.command_prefix)
    if admin_text is None:
        if not is_self_addressed(event, config.owner_numbers):
            return None
        admin_text = body
    return _parse_admin(admin_text, config.assistant_prefix.strip().lower())


class CommandRouter:
    """Apply administrative commands and acknowledge each with one reply."""

    def __init__(
        self,
        runtime: RuntimeState,
        sender: TaggedSender,
        config: CommandConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._runtime = runtime
        self._sender = sender
        self._config = config
        self._clock = clock

    async def execute(self, event: MessageEvent, command: AdminCommand) -> None:
        reply = self._apply(command)
        LOGGER.info("Command %s executed", command.verb)
        try:
            await self._sender.send(event.chat_id, f"{self._config.assistant_marker} {reply}")
        except TransportError:
            LOGGER.warning("Failed to acknowledge %s command", command.verb, exc_info=True)

    def _apply(self, command: AdminCommand) -> str:
        runtime = self._runtime
        if command.verb == "pause":
            runtime.pause()
            return "Bot en pause. Envoie « bot resume » pour le relancer."
        if command.verb == "resume":
            runtime.resume()
            return "Bot relancé."
        if command.verb == "status":
            return self.status_text()
        if command.verb == "context_set":
            ttl = self._config.context_ttl_seconds
            runtime.set_context(command.argument, ttl)
            return f"Contexte défini pour {ttl / 3600:g}h : {command.argument}"
        if command.verb == "context_clear":
            runtime.clear_context()
            return "Contexte effacé."
        if command.verb == "help":
            return HELP_TEXT
        raise ValueError(f"Unknown command verb: {command.verb}")

    def status_text(self) -> str:
        runtime = self._runtime
        now = self._clock()
        lines = [
            "Statut : " + ("en pause" if runtime.paused else "actif"),
            "Correction auto : " + ("activée" if runtime.auto_correct_enabled else "désactivée"),
        ]
        context = runtime.active_context(now)
        if context is None:
            lines.append("Contexte : aucun")
        else:
            minutes = max(0, int((context.expires_at - now) // 60))
            lines.append(f"Contexte : {context.description} (encore {minutes} min)")
        return "\n".join(lines)

"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the messaging transport, the language
model and storage adapters so that the core can be reused with different
backends.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.models import (
    ChatTurn,
    Completion,
    GlobalSettings,
    MessageRecord,
    ProfileLookup,
    RuntimeFlags,
    SentMessageRef,
    TypoVerdict,
)


class TransportPort(Protocol):
    """Messaging operations. Failures raise ``core.errors.TransportError``."""

    async def send_text(self, chat_id: str, text: str) -> SentMessageRef:
        ...

    async def start_typing(self, chat_id: str) -> None:
        ...

    async def stop_typing(self, chat_id: str) -> None:
        ...

    async def fetch_recent_messages(self, chat_id: str, limit: int) -> list[MessageRecord]:
        ...

    async def edit_message(self, ref: SentMessageRef, new_text: str) -> bool:
        """Return False when editing is unavailable; raise EditWindowExpired when too late."""
        ...


class CompletionOracle(Protocol):
    """Language model calls. Failures raise ``core.errors.OracleError``."""

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        user_message: str,
        tools: Optional[Sequence[str]] = None,
    ) -> Completion:
        ...

    async def check_typos(self, text: str, context: Sequence[MessageRecord]) -> TypoVerdict:
        ...


class ProfileStore(Protocol):
    def lookup(self, chat_identity: str) -> ProfileLookup:
        ...

    def global_settings(self) -> GlobalSettings:
        ...


class RuntimeStateStore(Protocol):
    def load(self) -> RuntimeFlags:
        ...

    def save(self, flags: RuntimeFlags) -> None:
        ...


class MemoryLog(Protocol):
    def append(
        self,
        chat_identity: str,
        user_text: str,
        reply_text: str,
        sentiment: str,
        timestamp: float,
    ) -> None:
        ...

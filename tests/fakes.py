"""Hand-written fakes shared by the core tests."""

from __future__ import annotations

from typing import Optional, Sequence

from core.errors import TransportError
from core.models import (
    ChatTurn,
    Completion,
    ContactFeatures,
    ContactProfile,
    Direction,
    GlobalSettings,
    MessageEvent,
    MessageRecord,
    NoProfile,
    ProfileFound,
    ProfileLookup,
    RuntimeFlags,
    SentMessageRef,
    TypoVerdict,
)

OWNER = "33600000000@c.us"
JULIE = "33611111111@c.us"


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.typing: list[tuple[str, str]] = []
        self.edits: list[tuple[SentMessageRef, str]] = []
        self.history: list[MessageRecord] = []
        self.edit_result = True
        self.edit_error: Optional[Exception] = None
        self.on_send = None
        # Number of upcoming sends that fail before the bridge recovers.
        self.failing_sends = 0

    async def send_text(self, chat_id: str, text: str) -> SentMessageRef:
        if self.failing_sends:
            self.failing_sends -= 1
            raise TransportError("bridge returned 502")
        self.sent.append((chat_id, text))
        if self.on_send is not None:
            self.on_send(chat_id, text)
        return SentMessageRef(f"sent-{len(self.sent)}", chat_id, 1_700_000_000_000)

    async def start_typing(self, chat_id: str) -> None:
        self.typing.append(("start", chat_id))

    async def stop_typing(self, chat_id: str) -> None:
        self.typing.append(("stop", chat_id))

    async def fetch_recent_messages(self, chat_id: str, limit: int) -> list[MessageRecord]:
        return list(self.history[-limit:])

    async def edit_message(self, ref: SentMessageRef, new_text: str) -> bool:
        if self.edit_error is not None:
            raise self.edit_error
        self.edits.append((ref, new_text))
        return self.edit_result


class FakeOracle:
    def __init__(self, reply: str = "ça va et toi ?", verdict: Optional[TypoVerdict] = None) -> None:
        self.reply = reply
        self.verdict = verdict or TypoVerdict(False, "", 0)
        self.error: Optional[Exception] = None
        self.calls: list[dict] = []
        self.typo_calls: list[tuple[str, list[MessageRecord]]] = []

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        user_message: str,
        tools: Optional[Sequence[str]] = None,
    ) -> Completion:
        self.calls.append(
            {"prompt": system_prompt, "history": list(history), "message": user_message, "tools": tools}
        )
        if self.error is not None:
            raise self.error
        return Completion(text=self.reply)

    async def check_typos(self, text: str, context: Sequence[MessageRecord]) -> TypoVerdict:
        self.typo_calls.append((text, list(context)))
        if self.error is not None:
            raise self.error
        return self.verdict


class FakeProfiles:
    def __init__(self, profiles: Optional[dict[str, ContactProfile]] = None, settings=None) -> None:
        self.profiles = profiles or {}
        self.settings = settings or GlobalSettings()

    def lookup(self, chat_identity: str) -> ProfileLookup:
        profile = self.profiles.get(chat_identity)
        if profile is None:
            return NoProfile(chat_identity)
        return ProfileFound(profile)

    def global_settings(self) -> GlobalSettings:
        return self.settings


class FakeRuntimeStore:
    def __init__(self, flags: Optional[RuntimeFlags] = None) -> None:
        self.flags = flags or RuntimeFlags()
        self.saved: list[RuntimeFlags] = []

    def load(self) -> RuntimeFlags:
        return self.flags

    def save(self, flags: RuntimeFlags) -> None:
        self.saved.append(flags)
        self.flags = flags


class FakeMemory:
    def __init__(self) -> None:
        self.rows: list[tuple] = []

    def append(self, chat_identity, user_text, reply_text, sentiment, timestamp) -> None:
        self.rows.append((chat_identity, user_text, reply_text, sentiment))


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def julie_profile(auto_reply: bool = True, auto_correct: bool = False, enabled: bool = True) -> ContactProfile:
    return ContactProfile(
        contact_id="julie",
        name="Julie",
        phone_number="+33 6 11 11 11 11",
        enabled=enabled,
        relationship="friend",
        features=ContactFeatures(auto_reply=auto_reply, auto_correct=auto_correct),
    )


def inbound(
    body: str,
    ids: tuple[str, ...] = ("in-1",),
    chat_id: str = JULIE,
    timestamp_ms: int = 1_700_000_000_000,
    **kwargs,
) -> MessageEvent:
    return MessageEvent(
        candidate_ids=ids,
        chat_id=chat_id,
        sender=chat_id,
        recipient=OWNER,
        direction=Direction.INBOUND,
        body=body,
        timestamp_ms=timestamp_ms,
        **kwargs,
    )


def outbound(
    body: str,
    ids: tuple[str, ...] = ("out-1",),
    chat_id: str = JULIE,
    timestamp_ms: int = 1_700_000_000_000,
    **kwargs,
) -> MessageEvent:
    return MessageEvent(
        candidate_ids=ids,
        chat_id=chat_id,
        sender=OWNER,
        recipient=chat_id,
        direction=Direction.OUTBOUND,
        body=body,
        timestamp_ms=timestamp_ms,
        **kwargs,
    )

"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from core.identity import normalize


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class MessageRecord:
    """Transient view of one message, as returned by history queries."""

    logical_id: str
    chat_identity: str
    direction: Direction
    body: str
    timestamp_ms: int
    has_media: bool = False

    @property
    def from_me(self) -> bool:
        return self.direction is Direction.OUTBOUND


@dataclass(frozen=True)
class MessageEvent:
    """One transport delivery of a message.

    The transport may fire several overlapping events for the same logical
    message, each exposing a different subset of id fields. ``candidate_ids``
    holds all of them in preference order.
    """

    candidate_ids: tuple[str, ...]
    chat_id: str
    sender: str
    recipient: str
    direction: Direction
    body: str
    timestamp_ms: int
    has_media: bool = False
    media_type: Optional[str] = None
    is_group: bool = False

    @property
    def logical_id(self) -> str:
        for candidate in self.candidate_ids:
            if candidate:
                return candidate
        return ""

    @property
    def chat_identity(self) -> str:
        return normalize(self.chat_id)

    @property
    def from_me(self) -> bool:
        return self.direction is Direction.OUTBOUND

    def to_record(self) -> MessageRecord:
        return MessageRecord(
            logical_id=self.logical_id,
            chat_identity=self.chat_identity,
            direction=self.direction,
            body=self.body,
            timestamp_ms=self.timestamp_ms,
            has_media=self.has_media,
        )


@dataclass(frozen=True)
class SentMessageRef:
    """Handle to a message the transport accepted for delivery."""

    message_id: str
    chat_id: str
    sent_at_ms: int


@dataclass(frozen=True)
class ContactFeatures:
    auto_reply: bool = True
    auto_correct: bool = False


@dataclass(frozen=True)
class ContactStyle:
    use_emojis: bool = True
    message_length: str = "short"
    typos: bool = False
    intimacy_level: int = 5


@dataclass(frozen=True)
class ContactProfile:
    """Per-contact configuration, owned by the contact store."""

    contact_id: str
    name: str
    phone_number: str
    enabled: bool = True
    relationship: str = "default"
    features: ContactFeatures = field(default_factory=ContactFeatures)
    style: ContactStyle = field(default_factory=ContactStyle)
    prompt: str = ""
    memory: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProfileFound:
    profile: ContactProfile


@dataclass(frozen=True)
class NoProfile:
    chat_identity: str


ProfileLookup = Union[ProfileFound, NoProfile]


@dataclass(frozen=True)
class GlobalSettings:
    master_switch: bool = True
    default_enabled: bool = False
    default_features: ContactFeatures = field(
        default_factory=lambda: ContactFeatures(auto_reply=False, auto_correct=False)
    )


@dataclass(frozen=True)
class TemporaryContext:
    """Single-slot situational note, e.g. "driving to work"."""

    description: str
    set_at: float
    expires_at: float

    def is_active(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class RuntimeFlags:
    """Persisted runtime switches."""

    paused: bool = False
    auto_correct_enabled: bool = False
    temporary_context: Optional[TemporaryContext] = None


class Phase(str, Enum):
    ACTIVE = "active"
    BUSY = "busy"


@dataclass(frozen=True)
class PhaseState:
    phase: Phase
    count: int
    threshold: int
    last_message_at: float


@dataclass(frozen=True)
class ResponseDelay:
    thinking_seconds: float
    typing_seconds: float
    phase: Phase

    @property
    def total_seconds(self) -> float:
        return self.thinking_seconds + self.typing_seconds


@dataclass(frozen=True)
class TypoVerdict:
    has_typos: bool
    corrected_text: str
    confidence: int


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str


@dataclass(frozen=True)
class Completion:
    text: str
    tool_invocations: tuple[str, ...] = ()


@dataclass(frozen=True)
class CorrectionOutcome:
    kind: str
    reason: str = ""
    corrected_text: str = ""

    @classmethod
    def none(cls, reason: str = "") -> "CorrectionOutcome":
        return cls(kind="none", reason=reason)

    @classmethod
    def applied(cls, corrected_text: str) -> "CorrectionOutcome":
        return cls(kind="applied", corrected_text=corrected_text)

    @classmethod
    def failed(cls, reason: str) -> "CorrectionOutcome":
        return cls(kind="failed", reason=reason)


@dataclass(frozen=True)
class AdminCommand:
    """Administrative verb: pause, resume, status, context_set, context_clear, help."""

    verb: str
    argument: str = ""


@dataclass(frozen=True)
class AssistantQuery:
    question: str


ParsedCommand = Union[AdminCommand, AssistantQuery]

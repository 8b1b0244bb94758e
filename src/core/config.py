"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field

Range = tuple[float, float]


@dataclass(frozen=True)
class ContextFloor:
    """Minimum thinking delay applied while a matching temporary context is active."""

    keywords: tuple[str, ...]
    min_seconds: float
    max_seconds: float


DEFAULT_CONTEXT_FLOORS = (
    ContextFloor(("conduis", "voiture", "route", "driving", "drive"), 120.0, 300.0),
    ContextFloor(("réunion", "reunion", "meeting"), 60.0, 180.0),
    ContextFloor(("ciné", "cine", "film", "cinema", "movie"), 300.0, 600.0),
)


@dataclass(frozen=True)
class PacingConfig:
    """Delay distributions for the active and busy conversation phases."""

    active_thinking: Range = (3.0, 8.0)
    active_typing: Range = (1.0, 3.0)
    busy_thinking: Range = (60.0, 300.0)
    busy_typing: Range = (2.0, 5.0)
    active_messages: tuple[int, int] = (3, 5)
    busy_messages: tuple[int, int] = (1, 2)
    idle_reset_seconds: float = 600.0
    seconds_per_char: float = 0.03
    length_cap_seconds: float = 3.0
    context_floors: tuple[ContextFloor, ...] = DEFAULT_CONTEXT_FLOORS

    def __post_init__(self) -> None:
        for name in ("active_thinking", "active_typing", "busy_thinking", "busy_typing"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"pacing.{name} must be a non-negative [min, max] range")
        for name in ("active_messages", "busy_messages"):
            low, high = getattr(self, name)
            if low < 1 or high < low:
                raise ValueError(f"pacing.{name} must be a [min, max] range starting at 1")
        # Busy must never look faster than active.
        if self.busy_thinking[0] < self.active_thinking[1]:
            raise ValueError("pacing.busy_thinking minimum must be >= active_thinking maximum")


@dataclass(frozen=True)
class CommandConfig:
    command_prefix: str = "bot "
    assistant_prefix: str = "paf "
    assistant_marker: str = "🤖"
    owner_numbers: tuple[str, ...] = ()
    context_ttl_seconds: float = 4 * 3600


@dataclass(frozen=True)
class CorrectionConfig:
    min_confidence: int = 70
    min_length: int = 6
    context_messages: int = 5
    edit_window_seconds: float = 15 * 60


@dataclass(frozen=True)
class ReplyConfig:
    owner_name: str = "Moi"
    history_fetch: int = 15
    history_window: int = 10
    fallback_message: str = "Désolé, mon téléphone bug un peu là"
    excuses: tuple[str, ...] = ("mon tel beugue",)
    media_reactions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    media_reaction_delay_seconds: float = 1.0
    assistant_history: int = 5


@dataclass(frozen=True)
class TrackingConfig:
    dedup_capacity: int = 5000
    tag_capacity: int = 500
    sweep_interval_seconds: float = 2 * 3600
    flags_refresh_seconds: float = 30.0

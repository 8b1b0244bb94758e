from __future__ import annotations

import random

import pytest

from core.config import PacingConfig
from core.models import Phase, ResponseDelay
from core.pacing import ConversationPhaseScheduler

CHAT = "33611111111"


def _scheduler(**overrides) -> ConversationPhaseScheduler:
    return ConversationPhaseScheduler(PacingConfig(**overrides), rng=random.Random(7))


def test_first_reply_is_active_and_within_bounds() -> None:
    scheduler = _scheduler()

    delay = scheduler.compute_delay(CHAT, planned_length=0, now=0.0)

    assert delay.phase is Phase.ACTIVE
    assert 3.0 <= delay.thinking_seconds <= 8.0
    assert 1.0 <= delay.typing_seconds <= 3.0


def test_phases_alternate_on_thresholds() -> None:
    scheduler = _scheduler(active_messages=(3, 3), busy_messages=(1, 1))

    phases = [scheduler.compute_delay(CHAT, now=float(i)).phase for i in range(8)]

    assert phases == [
        Phase.ACTIVE,
        Phase.ACTIVE,
        Phase.ACTIVE,
        Phase.BUSY,
        Phase.ACTIVE,
        Phase.ACTIVE,
        Phase.ACTIVE,
        Phase.BUSY,
    ]


def test_busy_delays_are_slower_than_active() -> None:
    scheduler = _scheduler(active_messages=(1, 1), busy_messages=(1, 1))

    active = scheduler.compute_delay(CHAT, now=0.0)
    busy = scheduler.compute_delay(CHAT, now=1.0)

    assert active.phase is Phase.ACTIVE and busy.phase is Phase.BUSY
    assert busy.thinking_seconds >= 60.0 > active.thinking_seconds


def test_idle_chat_resets_to_active() -> None:
    scheduler = _scheduler(active_messages=(2, 2), busy_messages=(2, 2))
    scheduler.compute_delay(CHAT, now=0.0)
    scheduler.compute_delay(CHAT, now=1.0)
    assert scheduler.state_for(CHAT).phase is Phase.BUSY

    delay = scheduler.compute_delay(CHAT, now=1.0 + 601.0)

    assert delay.phase is Phase.ACTIVE


def test_chats_are_independent() -> None:
    scheduler = _scheduler(active_messages=(1, 1))
    scheduler.compute_delay(CHAT, now=0.0)

    assert scheduler.compute_delay("33622222222", now=0.5).phase is Phase.ACTIVE
    assert len(scheduler) == 2


def test_typing_grows_with_length_up_to_cap() -> None:
    scheduler = _scheduler(active_typing=(1.0, 1.0))

    short = scheduler.compute_delay(CHAT, planned_length=10, now=0.0)
    long = scheduler.compute_delay("33622222222", planned_length=1000, now=0.0)

    assert short.typing_seconds == pytest.approx(1.3)
    assert long.typing_seconds == pytest.approx(4.0)


def test_context_floor_raises_thinking() -> None:
    scheduler = _scheduler()
    delay = ResponseDelay(thinking_seconds=4.0, typing_seconds=1.0, phase=Phase.ACTIVE)

    driving = scheduler.apply_context_floor(delay, "Je conduis vers Lyon")
    unrelated = scheduler.apply_context_floor(delay, "au bureau")

    assert 120.0 <= driving.thinking_seconds <= 300.0
    assert unrelated == delay
    assert scheduler.apply_context_floor(delay, None) == delay


def test_context_floor_never_lowers() -> None:
    scheduler = _scheduler()
    delay = ResponseDelay(thinking_seconds=1000.0, typing_seconds=1.0, phase=Phase.BUSY)

    assert scheduler.apply_context_floor(delay, "au cinema").thinking_seconds == 1000.0


def test_reset_drops_state() -> None:
    scheduler = _scheduler()
    scheduler.compute_delay(CHAT, now=0.0)

    scheduler.reset()

    assert scheduler.state_for(CHAT) is None


def test_busy_range_must_not_overlap_active() -> None:
    with pytest.raises(ValueError):
        PacingConfig(active_thinking=(3.0, 80.0), busy_thinking=(60.0, 300.0))
    with pytest.raises(ValueError):
        PacingConfig(active_messages=(0, 2))

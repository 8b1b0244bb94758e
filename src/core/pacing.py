"""Conversation phase scheduler.

Per chat, the bot alternates between an "active" phase (answers within
seconds) and a "busy" phase (answers after minutes). Phase thresholds are
counted in bot responses and drawn fresh whenever a phase is entered. A long
silence resets the chat to a fresh active phase.

The scheduler only computes durations. Callers sleep.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import replace
from typing import Callable, Optional

from core.config import PacingConfig
from core.models import Phase, PhaseState, ResponseDelay

LOGGER = logging.getLogger(__name__)


class ConversationPhaseScheduler:
    def __init__(
        self,
        config: PacingConfig,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._clock = clock
        self._states: dict[str, PhaseState] = {}

    def _enter(self, phase: Phase, now: float) -> PhaseState:
        bounds = self._config.active_messages if phase is Phase.ACTIVE else self._config.busy_messages
        threshold = self._rng.randint(bounds[0], bounds[1])
        return PhaseState(phase=phase, count=0, threshold=threshold, last_message_at=now)

    def state_for(self, chat_identity: str) -> Optional[PhaseState]:
        return self._states.get(chat_identity)

    def compute_delay(
        self,
        chat_identity: str,
        planned_length: int = 0,
        now: Optional[float] = None,
    ) -> ResponseDelay:
        """Draw the delay for the next response and advance the chat's phase.

        Runs without awaiting, so concurrent handlers for one chat never
        interleave inside the update.
        """

        config = self._config
        now = self._clock() if now is None else now
        state = self._states.get(chat_identity)
        if state is None or now - state.last_message_at > config.idle_reset_seconds:
            if state is not None:
                LOGGER.debug("Idle reset for %s", chat_identity)
            state = self._enter(Phase.ACTIVE, now)

        if state.phase is Phase.ACTIVE:
            thinking_range, typing_range = config.active_thinking, config.active_typing
        else:
            thinking_range, typing_range = config.busy_thinking, config.busy_typing
        thinking = self._rng.uniform(*thinking_range)
        typing = self._rng.uniform(*typing_range)
        typing += min(max(planned_length, 0) * config.seconds_per_char, config.length_cap_seconds)

        count = state.count + 1
        if count >= state.threshold:
            next_phase = Phase.BUSY if state.phase is Phase.ACTIVE else Phase.ACTIVE
            next_state = self._enter(next_phase, now)
            LOGGER.debug("Chat %s switches to %s", chat_identity, next_phase.value)
        else:
            next_state = replace(state, count=count, last_message_at=now)
        self._states[chat_identity] = next_state

        return ResponseDelay(thinking_seconds=thinking, typing_seconds=typing, phase=state.phase)

    def apply_context_floor(self, delay: ResponseDelay, context: Optional[str]) -> ResponseDelay:
        """Raise the thinking delay to a context-specific minimum; never lowers it."""

        if not context:
            return delay
        lowered = context.lower()
        for floor in self._config.context_floors:
            if any(keyword in lowered for keyword in floor.keywords):
                minimum = self._rng.uniform(floor.min_seconds, floor.max_seconds)
                if minimum > delay.thinking_seconds:
                    return replace(delay, thinking_seconds=minimum)
                return delay
        return delay

    def reset(self) -> None:
        self._states = {}

    def __len__(self) -> int:
        return len(self._states)

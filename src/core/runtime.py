"""Shared runtime switches: pause flag, auto-correct flag, temporary context.

A single ``RuntimeState`` is injected into every component that needs it.
Reads are plain attribute access. Every mutation starts from the flags
currently on disk and is persisted through the store so it survives a
restart. A mutation that could not be persisted stays pending and is
written again on the next reload instead of being overwritten by it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from core.models import RuntimeFlags, TemporaryContext
from core.ports import RuntimeStateStore

LOGGER = logging.getLogger(__name__)


class RuntimeState:
    def __init__(self, store: RuntimeStateStore, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock
        self._pending = False
        try:
            self._flags = store.load()
        except (OSError, ValueError):
            LOGGER.warning("Runtime flags unreadable; using defaults", exc_info=True)
            self._flags = RuntimeFlags()

    @property
    def flags(self) -> RuntimeFlags:
        return self._flags

    @property
    def paused(self) -> bool:
        return self._flags.paused

    @property
    def auto_correct_enabled(self) -> bool:
        return self._flags.auto_correct_enabled

    def active_context(self, now: Optional[float] = None) -> Optional[TemporaryContext]:
        context = self._flags.temporary_context
        if context is None:
            return None
        now = self._clock() if now is None else now
        return context if context.is_active(now) else None

    def pause(self) -> None:
        self._update(paused=True)
        LOGGER.info("Bot paused")

    def resume(self) -> None:
        self._update(paused=False)
        LOGGER.info("Bot resumed")

    def set_auto_correct(self, enabled: bool) -> None:
        self._update(auto_correct_enabled=bool(enabled))
        LOGGER.info("Auto-correct %s", "enabled" if enabled else "disabled")

    def set_context(self, description: str, ttl_seconds: float) -> TemporaryContext:
        now = self._clock()
        context = TemporaryContext(
            description=description.strip(),
            set_at=now,
            expires_at=now + ttl_seconds,
        )
        self._update(temporary_context=context)
        LOGGER.info("Temporary context set for %.0f minutes", ttl_seconds / 60)
        return context

    def clear_context(self) -> None:
        self._update(temporary_context=None)
        LOGGER.info("Temporary context cleared")

    def reload(self) -> None:
        """Pick up flags edited by another process (the config panel)."""

        if self._pending:
            self._persist(self._flags)
            return
        try:
            flags = self._store.load()
        except (OSError, ValueError):
            LOGGER.warning("Runtime flags unreadable; keeping current state", exc_info=True)
            return
        if flags != self._flags:
            LOGGER.info("Runtime flags changed on disk")
            self._flags = flags

    def _update(self, **changes) -> None:
        base = self._flags
        if not self._pending:
            try:
                base = self._store.load()
            except (OSError, ValueError):
                LOGGER.warning("Runtime flags unreadable; updating current state", exc_info=True)
        self._flags = replace(base, **changes)
        self._persist(self._flags)

    def _persist(self, flags: RuntimeFlags) -> None:
        try:
            self._store.save(flags)
        except OSError:
            LOGGER.warning("Failed to persist runtime flags", exc_info=True)
            self._pending = True
            return
        self._pending = False

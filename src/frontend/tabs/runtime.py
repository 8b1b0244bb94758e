"""Runtime tab: live switches shared with the running bot."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, Input, Static, Switch

from adapters.json_store import JsonRuntimeStore
from core.runtime import RuntimeState

from ..constants import storage_path
from ..validators import parse_non_negative_int


class RuntimeTab(Container):
    """Pause, auto-correct and temporary context.

    These switches live in bot-state.json, not config.json, so every change is
    written immediately; the bot picks it up on its next flag refresh.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._runtime: Optional[RuntimeState] = None
        self._loading_form = False
        self._ready = False

    def compose(self):
        with Vertical(id="runtime-panel"):
            yield Static("Runtime", classes="settings-title")
            yield Static("", id="runtime-path", classes="subtle")
            with Horizontal(id="runtime-pause-row"):
                yield Static("", id="runtime-state")
                yield Button("Pause", id="runtime-pause", variant="warning")
                yield Button("Resume", id="runtime-resume", variant="success")
            yield Static("auto-correct (contacts without a profile)", classes="form-label")
            yield Switch(id="runtime-autocorrect")
            yield Static("temporary context", classes="form-label")
            yield Input(placeholder="je conduis", id="runtime-context")
            yield Static("duration (minutes)", classes="form-label")
            yield Input(placeholder="30", id="runtime-duration")
            with Horizontal(id="runtime-context-actions"):
                yield Button("Set context", id="runtime-context-set", variant="primary")
                yield Button("Clear context", id="runtime-context-clear")
            yield Static("", id="runtime-output")

    def on_mount(self) -> None:
        self._ready = True
        self.reload_from_config()

    def reload_from_config(self) -> None:
        if not self._ready:
            return
        path = storage_path(self.app.config_state.data, "state_path")
        self._runtime = RuntimeState(JsonRuntimeStore(str(path)))
        self.query_one("#runtime-path", Static).update(f"state: {path}")
        self._render_state()

    def _render_state(self) -> None:
        if self._runtime is None:
            return
        flags = self._runtime.flags
        self._loading_form = True
        self.query_one("#runtime-autocorrect", Switch).value = flags.auto_correct_enabled
        self._loading_form = False
        self.query_one("#runtime-state", Static).update("paused" if flags.paused else "active")
        self.query_one("#runtime-pause", Button).disabled = flags.paused
        self.query_one("#runtime-resume", Button).disabled = not flags.paused

        context = self._runtime.active_context()
        if context is None:
            self._set_output("no temporary context")
        else:
            until = datetime.fromtimestamp(context.expires_at).strftime("%H:%M")
            self._set_output(f"context: {context.description} (until {until})")

    @on(Button.Pressed, "#runtime-pause")
    def _on_pause(self) -> None:
        if self._runtime is not None:
            self._runtime.pause()
            self._render_state()

    @on(Button.Pressed, "#runtime-resume")
    def _on_resume(self) -> None:
        if self._runtime is not None:
            self._runtime.resume()
            self._render_state()

    @on(Switch.Changed, "#runtime-autocorrect")
    def _on_autocorrect(self, event: Switch.Changed) -> None:
        if self._loading_form or self._runtime is None:
            return
        self._runtime.set_auto_correct(bool(event.value))

    @on(Button.Pressed, "#runtime-context-set")
    def _on_context_set(self) -> None:
        if self._runtime is None:
            return
        description = self.query_one("#runtime-context", Input).value.strip()
        if not description:
            self._set_output("context text required")
            return
        raw_duration = self.query_one("#runtime-duration", Input).value.strip() or "30"
        minutes, error = parse_non_negative_int(raw_duration)
        if error or not minutes:
            self._set_output(error or "duration must be positive")
            return
        self._runtime.set_context(description, minutes * 60)
        self._render_state()

    @on(Button.Pressed, "#runtime-context-clear")
    def _on_context_clear(self) -> None:
        if self._runtime is not None:
            self._runtime.clear_context()
            self.query_one("#runtime-context", Input).value = ""
            self._render_state()

    def _set_output(self, message: str) -> None:
        self.query_one("#runtime-output", Static).update(message)

"""Main Textual app for the Doppel config panel."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import Button, ContentSwitcher, Footer, Static, Tab, Tabs

from adapters.json_store import DEFAULT_CONTACTS_DOCUMENT, atomic_write_json

from .constants import CONFIG_PATH, WHATSAPP_GREEN, storage_path
from .modals import ReloadConfirmScreen, UnsavedChangesScreen
from .state import ConfigState
from .tabs.contacts import ContactsTab
from .tabs.memory import MemoryTab
from .tabs.runtime import RuntimeTab
from .tabs.settings import SettingsTab


class ConfigPanelApp(App):
    """Config panel over config.json and contacts.json."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config_state = ConfigState()

    BINDINGS = [
        ("ctrl+s", "save_config", "Save"),
        ("ctrl+r", "reload_config", "Reload"),
        ("q", "request_quit", "Quit"),
        ("ctrl+c", "request_quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("persona auto-responder", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static(f"config: {CONFIG_PATH.name}", classes="subtle")
                    yield Static("", id="header-contacts", classes="subtle")
                    yield Static("", id="header-status")
                    yield Horizontal(
                        Button("Save", id="save-btn"),
                        Button("Reload", id="reload-btn"),
                        id="header-actions",
                    )

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Contacts", id="contacts"),
                    Tab("Settings", id="settings"),
                    Tab("Runtime", id="runtime"),
                    Tab("Memory", id="memory"),
                    id="tabs",
                )

        with ContentSwitcher(id="content"):
            yield ContactsTab(id="contacts")
            yield SettingsTab(id="settings")
            yield RuntimeTab(id="runtime")
            yield MemoryTab(id="memory")
        yield Footer()

    def on_mount(self) -> None:
        self._load_config()
        self._set_active_tab("contacts")

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            label = event.tab.label
            if hasattr(label, "plain"):
                label = label.plain
            tab_id = str(label).strip().lower()
        self._set_active_tab(tab_id)

    def _set_active_tab(self, tab_id: str) -> None:
        self.query_one("#content", ContentSwitcher).current = tab_id

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-btn":
            self.action_save_config()
        elif event.button.id == "reload-btn":
            self.action_reload_config()

    def action_save_config(self) -> None:
        self._save_config()

    def action_reload_config(self) -> None:
        if self.config_state.dirty:
            self.push_screen(ReloadConfirmScreen(), self._handle_reload_choice)
        else:
            self._load_config()

    def action_request_quit(self) -> None:
        if self.config_state.dirty:
            self.push_screen(UnsavedChangesScreen(), self._handle_exit_choice)
        else:
            self.exit()

    def _handle_exit_choice(self, choice: str | None) -> None:
        if choice == "save":
            if self._save_config():
                self.exit()
        elif choice == "discard":
            self.exit()

    def _handle_reload_choice(self, choice: str | None) -> None:
        if choice == "save":
            if self._save_config():
                self._load_config()
        elif choice == "reload":
            self._load_config()

    @property
    def contacts_path(self) -> Path:
        return storage_path(self.config_state.data, "contacts_path")

    def _load_config(self) -> None:
        self.config_state.dirty = False
        self.config_state.data, self.config_state.error = self._read_document(CONFIG_PATH)
        contacts, contacts_error = self._read_document(self.contacts_path)
        if contacts is None and contacts_error == f"{self.contacts_path.name} missing":
            contacts, contacts_error = json.loads(json.dumps(DEFAULT_CONTACTS_DOCUMENT)), None
        self.config_state.contacts = contacts
        self.config_state.error = self.config_state.error or contacts_error
        self._refresh_header()
        self._refresh_tabs()

    @staticmethod
    def _read_document(path: Path) -> tuple[Optional[dict[str, Any]], Optional[str]]:
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None, f"{path.name} missing"
        except json.JSONDecodeError as exc:
            return None, f"{path.name} error: {exc.msg}"
        if not isinstance(loaded, dict):
            return None, f"{path.name} root must be an object"
        return loaded, None

    def _save_config(self) -> bool:
        if self.config_state.data is None and self.config_state.contacts is None:
            self.config_state.error = "Nothing to save"
            self._refresh_header()
            return False
        try:
            if self.config_state.data is not None:
                atomic_write_json(str(CONFIG_PATH), self.config_state.data)
            if self.config_state.contacts is not None:
                atomic_write_json(str(self.contacts_path), self.config_state.contacts)
        except OSError as exc:
            self.config_state.error = f"save failed: {exc.strerror or exc}"
            self._refresh_header()
            return False
        self.config_state.dirty = False
        self.config_state.error = None
        self._refresh_header()
        return True

    def mark_dirty(self) -> None:
        self.config_state.dirty = True
        self._refresh_header()

    def _refresh_header(self) -> None:
        status = self.query_one("#header-status", Static)
        save_btn = self.query_one("#save-btn", Button)

        status.remove_class("status-loaded", "status-modified", "status-error")
        if self.config_state.error:
            status.update(f"error: {self.config_state.error}")
            status.add_class("status-error")
        elif self.config_state.dirty:
            status.update("config: modified *")
            status.add_class("status-modified")
        else:
            status.update("config: loaded")
            status.add_class("status-loaded")

        contacts = (self.config_state.contacts or {}).get("contacts") or {}
        self.query_one("#header-contacts", Static).update(f"contacts: {len(contacts)}")
        save_btn.disabled = not self.config_state.dirty

    def _refresh_tabs(self) -> None:
        for tab_type in (ContactsTab, SettingsTab, RuntimeTab, MemoryTab):
            for tab in self.query(tab_type):
                tab.reload_from_config()

    def update_config_section(self, section: str, value: Any) -> None:
        """Update a config.json section in memory and mark dirty."""
        if self.config_state.data is None:
            self.config_state.data = {}
        self.config_state.data[section] = value
        self.mark_dirty()

    def update_contacts_section(self, section: str, value: Any) -> None:
        """Update a contacts.json section in memory and mark dirty."""
        if self.config_state.contacts is None:
            self.config_state.contacts = json.loads(json.dumps(DEFAULT_CONTACTS_DOCUMENT))
        self.config_state.contacts[section] = value
        self.mark_dirty()

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("DOP", WHATSAPP_GREEN),
            ("PEL > Config Panel", "bold"),
        )

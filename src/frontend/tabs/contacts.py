"""Contacts tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.widgets import Button, DataTable, Input, Select, Static, Switch, TextArea
from textual.widgets.data_table import RowDoesNotExist

from ..constants import MESSAGE_LENGTHS, RELATIONSHIPS
from ..modals import AddContactScreen, DeleteContactScreen
from ..validators import parse_non_negative_int, parse_phone_number


def _yes_no(value: Any) -> str:
    return "yes" if value else "no"


class ContactsTab(Container):
    """Contacts tab for editing contacts.json profiles."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False
        self._current_id: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="contacts-panel"):
            with Horizontal(id="contacts-body"):
                with Container(id="contacts-left"):
                    yield DataTable(id="contacts-table", cursor_type="row")
                with ScrollableContainer(id="contacts-right"):
                    yield Static("Contact details", id="contacts-title")
                    yield Static("name", classes="form-label")
                    yield Input(placeholder="Name", id="contact-name")
                    yield Static("phone number", classes="form-label")
                    yield Input(placeholder="+33 6 12 34 56 78", id="contact-phone")
                    yield Static("", id="contact-phone-error")
                    yield Static("relationship", classes="form-label")
                    yield Select(
                        [(relationship, relationship) for relationship in RELATIONSHIPS],
                        id="contact-relationship",
                        allow_blank=False,
                    )
                    yield Static("enabled", classes="form-label")
                    yield Switch(value=False, id="contact-enabled")
                    yield Static("auto reply", classes="form-label")
                    yield Switch(value=False, id="contact-auto-reply")
                    yield Static("auto correct", classes="form-label")
                    yield Switch(value=False, id="contact-auto-correct")
                    yield Static("emojis", classes="form-label")
                    yield Switch(value=False, id="contact-emojis")
                    yield Static("message length", classes="form-label")
                    yield Select(
                        [(length, length) for length in MESSAGE_LENGTHS],
                        id="contact-length",
                        allow_blank=False,
                    )
                    yield Static("intimacy level (0-10)", classes="form-label")
                    yield Input(placeholder="3", id="contact-intimacy")
                    yield Static("custom prompt (replaces the relationship prompt)", classes="form-label")
                    yield TextArea(id="contact-prompt")
                    yield Static("memory (one fact per line)", classes="form-label")
                    yield TextArea(id="contact-memory")
            with Horizontal(id="contacts-actions"):
                yield Button("Add", id="add-contact", variant="success")
                yield Button("Delete", id="delete-contact", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#contacts-table", DataTable)
        table.add_column("enabled", key="enabled", width=8)
        table.add_column("id", key="id", width=14)
        table.add_column("name", key="name", width=16)
        table.add_column("phone", key="phone_number", width=18)
        table.add_column("relationship", key="relationship", width=12)
        table.add_column("reply", key="auto_reply", width=6)
        table.add_column("correct", key="auto_correct", width=8)
        table.zebra_stripes = True
        self._table_ready = True
        self.reload_from_config()

    def reload_from_config(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#contacts-table", DataTable)
        table.clear()
        contacts = self._get_contacts()
        for contact_id, entry in contacts.items():
            features = entry.get("features") or {}
            table.add_row(
                _yes_no(entry.get("enabled")),
                contact_id,
                entry.get("name", ""),
                entry.get("phone_number", ""),
                entry.get("relationship", ""),
                _yes_no(features.get("auto_reply")),
                _yes_no(features.get("auto_correct")),
                key=contact_id,
            )
        if self._current_id not in contacts:
            self._current_id = None
        self._set_form_state(self._current_id)
        self._update_action_state()

    def _get_contacts(self) -> dict[str, dict[str, Any]]:
        document = self.app.config_state.contacts or {}
        contacts = document.get("contacts")
        if isinstance(contacts, dict):
            return contacts
        return {}

    def _set_contacts(self, contacts: dict[str, dict[str, Any]]) -> None:
        self.app.update_contacts_section("contacts", contacts)

    def _current_entry(self) -> Optional[dict[str, Any]]:
        if self._current_id is None:
            return None
        return self._get_contacts().get(self._current_id)

    def _update_entry(self, column_key: Optional[str], display: Any = None, **changes: Any) -> None:
        entry = self._current_entry()
        if entry is None:
            return
        for key, value in changes.items():
            if key in {"features", "style"}:
                nested = dict(entry.get(key) or {})
                nested.update(value)
                entry[key] = nested
            else:
                entry[key] = value
        contacts = self._get_contacts()
        contacts[self._current_id] = entry
        self._set_contacts(contacts)
        if column_key is not None:
            self._update_table_cell(self._current_id, column_key, display)

    def _update_action_state(self) -> None:
        self.query_one("#delete-contact", Button).disabled = self._current_id is None

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._current_id = self._coerce_row_key(event.row_key)
        self._set_form_state(self._current_id)
        self._update_action_state()

    @on(Input.Changed, "#contact-name")
    def _on_name_changed(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        name = event.value.strip()
        self._update_entry("name", name, name=name)

    @on(Input.Changed, "#contact-phone")
    def _on_phone_changed(self) -> None:
        if self._loading_form:
            return
        self._set_phone_error("")

    @on(Input.Submitted, "#contact-phone")
    def _on_phone_submitted(self, event: Input.Submitted) -> None:
        if self._loading_form:
            return
        info = parse_phone_number(event.value)
        if info.error:
            self._set_phone_error(info.error)
            return
        self._update_entry("phone_number", info.raw, phone_number=info.raw)

    @on(Select.Changed, "#contact-relationship")
    def _on_relationship_changed(self, event: Select.Changed) -> None:
        if self._loading_form or event.value is Select.BLANK:
            return
        self._update_entry("relationship", event.value, relationship=str(event.value))

    @on(Switch.Changed, "#contact-enabled")
    def _on_enabled_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        self._update_entry("enabled", _yes_no(event.value), enabled=bool(event.value))

    @on(Switch.Changed, "#contact-auto-reply")
    def _on_auto_reply_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        self._update_entry("auto_reply", _yes_no(event.value), features={"auto_reply": bool(event.value)})

    @on(Switch.Changed, "#contact-auto-correct")
    def _on_auto_correct_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        self._update_entry(
            "auto_correct", _yes_no(event.value), features={"auto_correct": bool(event.value)}
        )

    @on(Switch.Changed, "#contact-emojis")
    def _on_emojis_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        self._update_entry(None, style={"use_emojis": bool(event.value)})

    @on(Select.Changed, "#contact-length")
    def _on_length_changed(self, event: Select.Changed) -> None:
        if self._loading_form or event.value is Select.BLANK:
            return
        self._update_entry(None, style={"message_length": str(event.value)})

    @on(Input.Changed, "#contact-intimacy")
    def _on_intimacy_changed(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        value, error = parse_non_negative_int(event.value)
        if error or value is None:
            return
        self._update_entry(None, style={"intimacy_level": min(value, 10)})

    @on(TextArea.Changed, "#contact-prompt")
    def _on_prompt_changed(self, event: TextArea.Changed) -> None:
        if self._loading_form:
            return
        self._update_entry(None, custom_prompt=event.text_area.text.strip())

    @on(TextArea.Changed, "#contact-memory")
    def _on_memory_changed(self, event: TextArea.Changed) -> None:
        if self._loading_form:
            return
        lines = [line.strip() for line in event.text_area.text.splitlines() if line.strip()]
        self._update_entry(None, memory=lines)

    @on(Button.Pressed, "#add-contact")
    def _on_add_contact(self) -> None:
        self.app.push_screen(AddContactScreen(set(self._get_contacts())), self._handle_add_contact)

    @on(Button.Pressed, "#delete-contact")
    def _on_delete_contact(self) -> None:
        entry = self._current_entry()
        if entry is None:
            return
        label = f"{self._current_id} ({entry.get('name', '')})"
        self.app.push_screen(DeleteContactScreen(label), self._handle_delete_contact)

    def _handle_add_contact(self, payload: dict[str, Any] | None) -> None:
        if not payload:
            return
        contact_id = payload.pop("id")
        defaults = ((self.app.config_state.contacts or {}).get("global_settings") or {}).get(
            "default_features"
        ) or {}
        contacts = self._get_contacts()
        contacts[contact_id] = {
            **payload,
            "features": {
                "auto_reply": bool(defaults.get("auto_reply", False)),
                "auto_correct": bool(defaults.get("auto_correct", False)),
            },
            "custom_prompt": "",
            "memory": [],
            "keywords": [],
            "style": {
                "use_emojis": False,
                "message_length": "medium",
                "typos": False,
                "intimacy_level": 3,
            },
        }
        self._set_contacts(contacts)
        self._current_id = contact_id
        self.reload_from_config()

    def _handle_delete_contact(self, confirmed: bool | None) -> None:
        if not confirmed or self._current_id is None:
            return
        contacts = self._get_contacts()
        contacts.pop(self._current_id, None)
        self._set_contacts(contacts)
        self._current_id = None
        self.reload_from_config()

    def _update_table_cell(self, row_key: str, column_key: str, value: Any) -> None:
        table = self.query_one("#contacts-table", DataTable)
        try:
            table.get_row(row_key)
        except RowDoesNotExist:
            self.reload_from_config()
            return
        table.update_cell(row_key, column_key, value)

    def _set_form_state(self, contact_id: Optional[str]) -> None:
        self._loading_form = True
        entry = self._get_contacts().get(contact_id) if contact_id else None
        inputs = {
            "name": self.query_one("#contact-name", Input),
            "phone": self.query_one("#contact-phone", Input),
            "intimacy": self.query_one("#contact-intimacy", Input),
        }
        switches = {
            "enabled": self.query_one("#contact-enabled", Switch),
            "auto_reply": self.query_one("#contact-auto-reply", Switch),
            "auto_correct": self.query_one("#contact-auto-correct", Switch),
            "emojis": self.query_one("#contact-emojis", Switch),
        }
        relationship = self.query_one("#contact-relationship", Select)
        length = self.query_one("#contact-length", Select)
        prompt = self.query_one("#contact-prompt", TextArea)
        memory = self.query_one("#contact-memory", TextArea)
        self._set_phone_error("")

        widgets = [*inputs.values(), *switches.values(), relationship, length, prompt, memory]
        for widget in widgets:
            widget.disabled = entry is None

        if entry is None:
            for widget in inputs.values():
                widget.value = ""
            for widget in switches.values():
                widget.value = False
            prompt.text = ""
            memory.text = ""
        else:
            features = entry.get("features") or {}
            style = entry.get("style") or {}
            inputs["name"].value = str(entry.get("name", ""))
            inputs["phone"].value = str(entry.get("phone_number", ""))
            inputs["intimacy"].value = str(style.get("intimacy_level", 3))
            switches["enabled"].value = bool(entry.get("enabled", False))
            switches["auto_reply"].value = bool(features.get("auto_reply", False))
            switches["auto_correct"].value = bool(features.get("auto_correct", False))
            switches["emojis"].value = bool(style.get("use_emojis", False))
            rel_value = entry.get("relationship", "default")
            relationship.value = rel_value if rel_value in RELATIONSHIPS else "default"
            length_value = style.get("message_length", "medium")
            length.value = length_value if length_value in MESSAGE_LENGTHS else "medium"
            prompt.text = str(entry.get("custom_prompt") or "")
            raw_memory = entry.get("memory") or []
            memory.text = "\n".join(raw_memory if isinstance(raw_memory, list) else [str(raw_memory)])
        self._loading_form = False

    @staticmethod
    def _coerce_row_key(value: Any) -> str:
        if hasattr(value, "value"):
            return str(value.value)
        return str(value)

    def _set_phone_error(self, message: str) -> None:
        self.query_one("#contact-phone-error", Static).update(message)

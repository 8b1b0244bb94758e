"""Modal dialogs for the Textual config panel."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Select, Static, Switch

from .constants import RELATIONSHIPS
from .validators import parse_contact_id, parse_phone_number


class UnsavedChangesScreen(ModalScreen[str]):
    """Prompt when exiting with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Unsaved changes", classes="modal-title"),
            Static("Save changes before exit?", classes="modal-body"),
            Horizontal(
                Button("Save", id="unsaved-save", variant="success"),
                Button("Discard", id="unsaved-discard", variant="error"),
                Button("Cancel", id="unsaved-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "unsaved-save":
            self.dismiss("save")
        elif event.button.id == "unsaved-discard":
            self.dismiss("discard")
        else:
            self.dismiss("cancel")


class ReloadConfirmScreen(ModalScreen[str]):
    """Prompt when reloading with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Reload files?", classes="modal-title"),
            Static("Unsaved changes will be lost.", classes="modal-body"),
            Horizontal(
                Button("Save", id="reload-save"),
                Button("Reload", id="reload-reload", variant="warning"),
                Button("Cancel", id="reload-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "reload-save":
            self.dismiss("save")
        elif event.button.id == "reload-reload":
            self.dismiss("reload")
        else:
            self.dismiss("cancel")


class AddContactScreen(ModalScreen[dict[str, Any] | None]):
    """Modal form for adding a contact profile."""

    def __init__(self, existing_ids: set[str]) -> None:
        super().__init__()
        self._existing_ids = existing_ids

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add contact", classes="modal-title"),
            Static("", id="add-error", classes="modal-error"),
            Static("id", classes="form-label"),
            Input(placeholder="julie", id="add-contact-id"),
            Static("name", classes="form-label"),
            Input(placeholder="Julie", id="add-name"),
            Static("phone number", classes="form-label"),
            Input(placeholder="+33 6 12 34 56 78", id="add-phone"),
            Static("relationship", classes="form-label"),
            Select(
                [(relationship, relationship) for relationship in RELATIONSHIPS],
                value="friend",
                id="add-relationship",
                allow_blank=False,
            ),
            Static("enabled", classes="form-label"),
            Switch(value=False, id="add-enabled"),
            Horizontal(
                Button("Add", id="add-confirm", variant="success"),
                Button("Cancel", id="add-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-cancel":
            self.dismiss(None)
            return
        if event.button.id != "add-confirm":
            return
        error = self.query_one("#add-error", Static)
        contact_id, id_error = parse_contact_id(
            self.query_one("#add-contact-id", Input).value, self._existing_ids
        )
        if id_error or contact_id is None:
            error.update(id_error or "invalid id")
            return
        phone = parse_phone_number(self.query_one("#add-phone", Input).value)
        if phone.error:
            error.update(phone.error)
            return
        name = self.query_one("#add-name", Input).value.strip() or contact_id
        relationship = self.query_one("#add-relationship", Select).value
        self.dismiss(
            {
                "id": contact_id,
                "name": name,
                "phone_number": phone.raw,
                "relationship": str(relationship),
                "enabled": bool(self.query_one("#add-enabled", Switch).value),
            }
        )


class DeleteContactScreen(ModalScreen[bool]):
    """Confirm deletion of a contact."""

    def __init__(self, label: str) -> None:
        super().__init__()
        self._label = label

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Delete contact?", classes="modal-title"),
            Static(self._label, classes="modal-body"),
            Horizontal(
                Button("Delete", id="delete-confirm", variant="error"),
                Button("Cancel", id="delete-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "delete-confirm":
            self.dismiss(True)
        else:
            self.dismiss(False)


class ClearMemoryScreen(ModalScreen[bool]):
    """Confirm wiping the conversation memory log."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Clear memory?", classes="modal-title"),
            Static("All recorded exchanges will be deleted.", classes="modal-body"),
            Horizontal(
                Button("Clear", id="clear-confirm", variant="error"),
                Button("Cancel", id="clear-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "clear-confirm")

"""Settings tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.widgets import ContentSwitcher, DataTable, Input, Select, Static, Switch, TextArea

from ..validators import parse_non_negative_int


class SettingsTab(Container):
    """Settings tab for the reply policy, owner identity, replies, correction and logging."""

    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

    SECTION_LABELS = [
        ("policy", "Policy", "Master switch and defaults"),
        ("owner", "Owner", "Persona name and own numbers"),
        ("replies", "Replies", "Fallback and excuse messages"),
        ("correction", "Correction", "Typo fix thresholds"),
        ("logging", "Logging", "Console/file logging + redaction"),
    ]

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False
        self._table_ready = False

    def compose(self):
        with Vertical(id="settings-panel"):
            with Horizontal(id="settings-body"):
                with Container(id="settings-left"):
                    yield DataTable(id="settings-table", cursor_type="row")
                with Container(id="settings-right"):
                    with ContentSwitcher(id="settings-forms"):
                        with Container(id="settings-policy"):
                            yield Static("Policy", classes="settings-title")
                            yield Static("master switch (all automatic replies)", classes="form-label")
                            yield Switch(id="policy-master")
                            yield Static("reply to unknown numbers", classes="form-label")
                            yield Switch(id="policy-default-enabled")
                            yield Static("default auto reply (new contacts)", classes="form-label")
                            yield Switch(id="policy-default-reply")
                            yield Static("default auto correct", classes="form-label")
                            yield Switch(id="policy-default-correct")

                        with Container(id="settings-owner"):
                            yield Static("Owner", classes="settings-title")
                            yield Static("name", classes="form-label")
                            yield Input(placeholder="Nicolas", id="owner-name")
                            yield Static("own numbers (one per line)", classes="form-label")
                            yield TextArea(id="owner-numbers")

                        with ScrollableContainer(id="settings-replies"):
                            yield Static("Replies", classes="settings-title")
                            yield Static("fallback message", classes="form-label")
                            yield Input(id="replies-fallback")
                            yield Static("excuses (one per line)", classes="form-label")
                            yield TextArea(id="replies-excuses")
                            yield Static("history_window", classes="form-label")
                            yield Input(placeholder="10", id="replies-history")
                            yield Static("", id="replies-error", classes="settings-error")

                        with Container(id="settings-correction"):
                            yield Static("Correction", classes="settings-title")
                            yield Static("min_confidence", classes="form-label")
                            yield Input(placeholder="70", id="correction-confidence")
                            yield Static("min_length", classes="form-label")
                            yield Input(placeholder="6", id="correction-length")
                            yield Static("edit_window_minutes", classes="form-label")
                            yield Input(placeholder="15", id="correction-window")
                            yield Static("", id="correction-error", classes="settings-error")

                        with ScrollableContainer(id="settings-logging"):
                            yield Static("Logging", classes="settings-title")
                            yield Static("enabled", classes="form-label")
                            yield Switch(id="logging-enabled")
                            yield Static("level", classes="form-label")
                            yield Select(
                                [(level, level) for level in self.LOG_LEVELS],
                                id="logging-level",
                                allow_blank=False,
                            )
                            yield Static("console", classes="form-label")
                            yield Switch(id="logging-console")
                            yield Static("file.enabled", classes="form-label")
                            yield Switch(id="logging-file-enabled")
                            yield Static("file.path", classes="form-label")
                            yield Input(placeholder="logs/doppel.log", id="logging-file-path")
                            yield Static("redact.enabled", classes="form-label")
                            yield Switch(id="logging-redact-enabled")
                            yield Static("redact.patterns (env var names, one per line)", classes="form-label")
                            yield TextArea(id="logging-redact-patterns")

    def on_mount(self) -> None:
        table = self.query_one("#settings-table", DataTable)
        table.add_column("section", key="section", width=14)
        table.add_column("description", key="description", width=32)
        for key, label, description in self.SECTION_LABELS:
            table.add_row(label, description, key=key)
        table.zebra_stripes = True
        self._table_ready = True
        self._select_section("policy")
        self.reload_from_config()

    def reload_from_config(self) -> None:
        if not self._table_ready:
            return
        self._loading_form = True
        self._load_policy()
        self._load_owner()
        self._load_replies()
        self._load_correction()
        self._load_logging()
        self._loading_form = False

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._select_section(self._coerce_row_key(event.row_key))

    def _select_section(self, section_id: str) -> None:
        self.query_one("#settings-forms", ContentSwitcher).current = f"settings-{section_id}"

    # config.json sections

    def _get_section(self, key: str) -> dict[str, Any]:
        data = self.app.config_state.data or {}
        section = data.get(key)
        return section if isinstance(section, dict) else {}

    def _set_value(self, section: str, path: tuple[str, ...], value: Any) -> None:
        config = self._get_section(section)
        target = config
        for key in path[:-1]:
            nested = target.get(key)
            if not isinstance(nested, dict):
                nested = {}
                target[key] = nested
            target = nested
        target[path[-1]] = value
        self.app.update_config_section(section, config)

    def _set_int(self, section: str, key: str, raw: str, error_id: str) -> None:
        value, error = parse_non_negative_int(raw)
        self.query_one(f"#{error_id}", Static).update(error or "")
        if value is not None:
            self._set_value(section, (key,), value)

    # contacts.json global_settings

    def _get_policy(self) -> dict[str, Any]:
        document = self.app.config_state.contacts or {}
        policy = document.get("global_settings")
        return policy if isinstance(policy, dict) else {}

    def _set_policy(self, key: str, value: bool) -> None:
        policy = self._get_policy()
        if key.startswith("default_features."):
            features = dict(policy.get("default_features") or {})
            features[key.split(".", 1)[1]] = value
            policy["default_features"] = features
        else:
            policy[key] = value
        self.app.update_contacts_section("global_settings", policy)

    def _load_policy(self) -> None:
        policy = self._get_policy()
        features = policy.get("default_features") or {}
        self.query_one("#policy-master", Switch).value = bool(policy.get("master_switch", True))
        self.query_one("#policy-default-enabled", Switch).value = bool(policy.get("default_enabled", False))
        self.query_one("#policy-default-reply", Switch).value = bool(features.get("auto_reply", False))
        self.query_one("#policy-default-correct", Switch).value = bool(features.get("auto_correct", False))

    def _load_owner(self) -> None:
        owner = self._get_section("owner")
        self.query_one("#owner-name", Input).value = str(owner.get("name", ""))
        self.query_one("#owner-numbers", TextArea).text = "\n".join(owner.get("numbers", []) or [])

    def _load_replies(self) -> None:
        replies = self._get_section("replies")
        self.query_one("#replies-fallback", Input).value = str(replies.get("fallback_message", ""))
        self.query_one("#replies-excuses", TextArea).text = "\n".join(replies.get("excuses", []) or [])
        self.query_one("#replies-history", Input).value = str(replies.get("history_window", 10))
        self.query_one("#replies-error", Static).update("")

    def _load_correction(self) -> None:
        correction = self._get_section("correction")
        self.query_one("#correction-confidence", Input).value = str(correction.get("min_confidence", 70))
        self.query_one("#correction-length", Input).value = str(correction.get("min_length", 6))
        self.query_one("#correction-window", Input).value = str(correction.get("edit_window_minutes", 15))
        self.query_one("#correction-error", Static).update("")

    def _load_logging(self) -> None:
        logging = self._get_section("logging")
        file_cfg = logging.get("file") or {}
        redact_cfg = logging.get("redact") or {}
        level = logging.get("level", "INFO")
        self.query_one("#logging-enabled", Switch).value = bool(logging.get("enabled", False))
        self.query_one("#logging-level", Select).value = level if level in self.LOG_LEVELS else "INFO"
        self.query_one("#logging-console", Switch).value = bool(logging.get("console", True))
        self.query_one("#logging-file-enabled", Switch).value = bool(file_cfg.get("enabled", False))
        self.query_one("#logging-file-path", Input).value = str(file_cfg.get("path", "logs/doppel.log"))
        self.query_one("#logging-redact-enabled", Switch).value = bool(redact_cfg.get("enabled", False))
        self.query_one("#logging-redact-patterns", TextArea).text = "\n".join(redact_cfg.get("patterns", []) or [])

    @on(Switch.Changed)
    def _on_switch_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        value = bool(event.value)
        switch_id = event.switch.id
        if switch_id == "policy-master":
            self._set_policy("master_switch", value)
        elif switch_id == "policy-default-enabled":
            self._set_policy("default_enabled", value)
        elif switch_id == "policy-default-reply":
            self._set_policy("default_features.auto_reply", value)
        elif switch_id == "policy-default-correct":
            self._set_policy("default_features.auto_correct", value)
        elif switch_id == "logging-enabled":
            self._set_value("logging", ("enabled",), value)
        elif switch_id == "logging-console":
            self._set_value("logging", ("console",), value)
        elif switch_id == "logging-file-enabled":
            self._set_value("logging", ("file", "enabled"), value)
        elif switch_id == "logging-redact-enabled":
            self._set_value("logging", ("redact", "enabled"), value)

    @on(Select.Changed, "#logging-level")
    def _on_logging_level(self, event: Select.Changed) -> None:
        if self._loading_form or event.value is Select.BLANK:
            return
        self._set_value("logging", ("level",), event.value)

    @on(Input.Changed, "#owner-name")
    def _on_owner_name(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        self._set_value("owner", ("name",), event.value.strip())

    @on(Input.Changed, "#replies-fallback")
    def _on_fallback(self, event: Input.Changed) -> None:
        if self._loading_form or not event.value.strip():
            return
        self._set_value("replies", ("fallback_message",), event.value.strip())

    @on(Input.Changed, "#replies-history")
    def _on_history(self, event: Input.Changed) -> None:
        if not self._loading_form:
            self._set_int("replies", "history_window", event.value, "replies-error")

    @on(Input.Changed, "#correction-confidence")
    def _on_confidence(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        value, error = parse_non_negative_int(event.value)
        if value is not None and value > 100:
            error = "Confidence is a percentage (0-100)"
        self.query_one("#correction-error", Static).update(error or "")
        if value is not None and not error:
            self._set_value("correction", ("min_confidence",), value)

    @on(Input.Changed, "#correction-length")
    def _on_min_length(self, event: Input.Changed) -> None:
        if not self._loading_form:
            self._set_int("correction", "min_length", event.value, "correction-error")

    @on(Input.Changed, "#correction-window")
    def _on_window(self, event: Input.Changed) -> None:
        if not self._loading_form:
            self._set_int("correction", "edit_window_minutes", event.value, "correction-error")

    @on(Input.Changed, "#logging-file-path")
    def _on_logging_file_path(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        self._set_value("logging", ("file", "path"), event.value)

    @on(TextArea.Changed)
    def _on_text_area_changed(self, event: TextArea.Changed) -> None:
        if self._loading_form:
            return
        lines = [line.strip() for line in event.text_area.text.splitlines() if line.strip()]
        area_id = event.text_area.id
        if area_id == "owner-numbers":
            self._set_value("owner", ("numbers",), lines)
        elif area_id == "replies-excuses":
            self._set_value("replies", ("excuses",), lines)
        elif area_id == "logging-redact-patterns":
            self._set_value("logging", ("redact", "patterns"), lines)

    @staticmethod
    def _coerce_row_key(value: Any) -> str:
        if hasattr(value, "value"):
            return str(value.value)
        return str(value)

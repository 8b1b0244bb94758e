"""Memory tab for viewing, exporting and clearing recorded exchanges."""

from __future__ import annotations

import csv
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from adapters.sqlite_memory import SQLiteMemoryLog

from ..constants import PROJECT_ROOT, storage_path
from ..modals import ClearMemoryScreen


class MemoryTab(Container):
    """Memory tab to browse auto-reply exchanges and export to JSON/CSV."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._rows: list[dict[str, Any]] = []
        self._table_ready = False

    def compose(self):
        with Vertical(id="memory-panel"):
            yield Static("Exchanges", id="memory-title")
            yield DataTable(id="memory-table", cursor_type="row")
            with Horizontal(id="memory-actions"):
                yield Button("Refresh", id="memory-refresh")
                yield Button("Export JSON", id="export-json", variant="success")
                yield Button("Export CSV", id="export-csv")
                yield Button("Clear", id="memory-clear", variant="error")
            yield Static("", id="memory-output")

    def on_mount(self) -> None:
        table = self.query_one("#memory-table", DataTable)
        table.add_column("date", key="created_at", width=18)
        table.add_column("chat", key="chat_identity", width=14)
        table.add_column("mood", key="sentiment", width=9)
        table.add_column("message", key="user_text", width=34)
        table.add_column("reply", key="reply_text", width=34)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self.query_one("#memory-actions").styles.height = 3
        self._table_ready = True
        self.reload_from_config()

    @property
    def _db_path(self) -> Path:
        return storage_path(self.app.config_state.data, "db_path")

    def reload_from_config(self) -> None:
        self._load_exchanges()

    @on(Button.Pressed, "#memory-refresh")
    def _on_refresh(self) -> None:
        self._load_exchanges()

    @on(Button.Pressed, "#export-json")
    def _on_export_json(self) -> None:
        self._export_rows("json")

    @on(Button.Pressed, "#export-csv")
    def _on_export_csv(self) -> None:
        self._export_rows("csv")

    @on(Button.Pressed, "#memory-clear")
    def _on_clear(self) -> None:
        if self._rows:
            self.app.push_screen(ClearMemoryScreen(), self._handle_clear)

    def _handle_clear(self, confirmed: bool | None) -> None:
        if not confirmed:
            return
        try:
            removed = SQLiteMemoryLog(str(self._db_path)).clear()
        except sqlite3.Error as exc:
            self._set_output(f"db error: {exc}")
            return
        self._load_exchanges()
        self._set_output(f"cleared {removed} exchanges")

    def _load_exchanges(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#memory-table", DataTable)
        table.clear()
        db_path = self._db_path
        if not db_path.exists():
            self._rows = []
            self._set_output(f"db not found: {db_path}")
            return
        try:
            rows = SQLiteMemoryLog(str(db_path)).recent(limit=500)
        except sqlite3.Error as exc:
            self._rows = []
            self._set_output(f"db error: {exc}")
            return

        self._rows = rows
        for row in rows:
            table.add_row(
                self._format_date_display(row["created_at"]),
                row["chat_identity"] or "",
                row["sentiment"] or "",
                self._clip_text(row["user_text"] or ""),
                self._clip_text(row["reply_text"] or ""),
                key=str(row["id"]),
            )
        self._set_output(f"loaded {len(rows)} exchanges from {db_path}")

    def _export_rows(self, fmt: str) -> None:
        if not self._rows:
            self._set_output("No exchanges to export.")
            return
        exports_dir = PROJECT_ROOT / "exports"
        exports_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = exports_dir / f"memory-{timestamp}.{fmt}"
        try:
            if fmt == "json":
                path.write_text(json.dumps(self._rows, indent=2, ensure_ascii=False), encoding="utf-8")
            else:
                with path.open("w", encoding="utf-8", newline="") as handle:
                    writer = csv.DictWriter(handle, fieldnames=list(self._rows[0].keys()))
                    writer.writeheader()
                    writer.writerows(self._rows)
            self._set_output(f"exported {len(self._rows)} exchanges to {path}")
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")

    def _set_output(self, message: str) -> None:
        self.query_one("#memory-output", Static).update(message)

    @staticmethod
    def _clip_text(value: str, limit: int = 48) -> str:
        if len(value) <= limit:
            return value
        return value[: limit - 3] + "..."

    @staticmethod
    def _format_date_display(value: str) -> str:
        if not value:
            return ""
        return value.replace("T", " ")[:19]

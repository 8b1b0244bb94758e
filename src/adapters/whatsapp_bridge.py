"""WhatsApp bridge transport adapter.

Talks to a local bridge process (a whatsapp-web session exposed over REST)
with aiohttp. Implements the core TransportPort.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from adapters.whatsapp_mapper import build_record
from core.errors import EditWindowExpired, TransportError
from core.models import MessageRecord, SentMessageRef

LOGGER = logging.getLogger(__name__)

# Statuses the bridge uses when a message can no longer be edited.
_EDIT_EXPIRED = {409, 410}
# Statuses meaning the bridge session cannot edit at all.
_EDIT_UNSUPPORTED = {404, 501}


class WhatsAppBridge:
    """Thin aiohttp client for the bridge REST API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=headers)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> tuple[int, Any]:
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        try:
            async with session.request(method, url, json=payload, params=params) as response:
                if response.content_type == "application/json":
                    data = await response.json()
                else:
                    data = await response.text()
                return response.status, data
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(path: str, status: int, data: Any) -> None:
        if status >= 400:
            raise TransportError(f"Bridge error {status} on {path}: {data}")

    async def send_text(self, chat_id: str, text: str) -> SentMessageRef:
        status, data = await self._request("POST", "/api/send", payload={"chat_id": chat_id, "text": text})
        self._raise_for_status("/api/send", status, data)
        if not isinstance(data, dict) or not data.get("id"):
            raise TransportError(f"Bridge send returned no message id: {data}")
        timestamp = data.get("timestamp")
        return SentMessageRef(
            message_id=str(data["id"]),
            chat_id=chat_id,
            sent_at_ms=int(timestamp) if timestamp else 0,
        )

    async def _set_typing(self, chat_id: str, state: str) -> None:
        status, data = await self._request("POST", "/api/typing", payload={"chat_id": chat_id, "state": state})
        self._raise_for_status("/api/typing", status, data)

    async def start_typing(self, chat_id: str) -> None:
        await self._set_typing(chat_id, "composing")

    async def stop_typing(self, chat_id: str) -> None:
        await self._set_typing(chat_id, "paused")

    async def fetch_recent_messages(self, chat_id: str, limit: int) -> list[MessageRecord]:
        status, data = await self._request(
            "GET",
            "/api/messages",
            params={"chat_id": chat_id, "limit": str(limit)},
        )
        self._raise_for_status("/api/messages", status, data)
        entries = data.get("messages", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise TransportError(f"Unexpected history payload: {type(entries).__name__}")
        records = []
        for entry in entries:
            try:
                records.append(build_record(entry))
            except (AttributeError, TypeError, ValueError):
                LOGGER.debug("Skipping malformed history entry: %r", entry)
        return records

    async def edit_message(self, ref: SentMessageRef, new_text: str) -> bool:
        status, data = await self._request(
            "POST",
            "/api/edit",
            payload={"chat_id": ref.chat_id, "message_id": ref.message_id, "text": new_text},
        )
        if status in _EDIT_EXPIRED:
            raise EditWindowExpired(f"Message {ref.message_id} can no longer be edited")
        if status in _EDIT_UNSUPPORTED:
            return False
        self._raise_for_status("/api/edit", status, data)
        if isinstance(data, dict):
            return bool(data.get("edited", True))
        return True

    async def health_check(self) -> bool:
        try:
            status, _ = await self._request("GET", "/api/health")
        except TransportError:
            return False
        return status == 200

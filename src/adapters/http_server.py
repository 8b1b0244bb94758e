"""HTTP surface: bridge webhook ingress and the local control API.

Both run in the bot process on one aiohttp application, so control calls act
directly on the live RuntimeState and contact store.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from adapters.json_store import JsonContactStore
from adapters.whatsapp_mapper import build_event
from core.models import MessageEvent
from core.runtime import RuntimeState

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[MessageEvent], Awaitable[None]]


class _BadRequest(Exception):
    pass


async def _read_json(request: web.Request) -> dict:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise _BadRequest("body must be JSON") from exc
    if not isinstance(data, dict):
        raise _BadRequest("body must be a JSON object")
    return data


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"status": "error", "detail": message}, status=status)


def _require_bool(data: dict, key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise _BadRequest(f"'{key}' must be true or false")
    return value


class ControlServer:
    def __init__(
        self,
        handler: EventHandler,
        runtime: RuntimeState,
        contacts: JsonContactStore,
        context_ttl_seconds: float = 30 * 60,
        webhook_secret: Optional[str] = None,
        api_token: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._handler = handler
        self._runtime = runtime
        self._contacts = contacts
        self._context_ttl = context_ttl_seconds
        self._webhook_secret = webhook_secret
        self._api_token = api_token
        self._clock = clock
        self._started_at = clock()
        # Strong references so scheduled handlers are not garbage collected.
        self._tasks: set[asyncio.Task] = set()

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth_middleware, self._error_middleware])
        app.router.add_post("/webhook/message", self.handle_webhook)
        app.router.add_get("/health", self.handle_health)
        app.router.add_get("/api/status", self.handle_status)
        app.router.add_post("/api/control", self.handle_control)
        app.router.add_post("/api/autocorrect", self.handle_autocorrect)
        app.router.add_post("/api/context", self.handle_set_context)
        app.router.add_delete("/api/context", self.handle_clear_context)
        app.router.add_post("/api/master-switch", self.handle_master_switch)
        app.router.add_get("/api/contacts", self.handle_list_contacts)
        app.router.add_post("/api/contacts", self.handle_add_contact)
        app.router.add_get("/api/contacts/{contact_id}", self.handle_get_contact)
        app.router.add_put("/api/contacts/{contact_id}", self.handle_update_contact)
        app.router.add_delete("/api/contacts/{contact_id}", self.handle_delete_contact)
        app.router.add_post("/api/contacts/{contact_id}/toggle", self.handle_toggle_contact)
        app.router.add_post("/api/contacts/{contact_id}/features", self.handle_contact_features)
        app.on_shutdown.append(self._drain)
        return app

    @web.middleware
    async def _auth_middleware(self, request: web.Request, handler):
        path = request.path
        if path.startswith("/api/") and self._api_token:
            if request.headers.get("Authorization", "") != f"Bearer {self._api_token}":
                return _error("unauthorized", 401)
        if path.startswith("/webhook/") and self._webhook_secret:
            if request.headers.get("X-Webhook-Secret", "") != self._webhook_secret:
                LOGGER.warning("Rejected webhook with invalid secret")
                return _error("unauthorized", 401)
        return await handler(request)

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler):
        try:
            return await handler(request)
        except _BadRequest as exc:
            return _error(str(exc), 400)

    async def _drain(self, app: web.Application) -> None:
        if self._tasks:
            LOGGER.info("Waiting for %s in-flight handlers", len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _schedule(self, event: MessageEvent) -> None:
        task = asyncio.create_task(self._handler(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_webhook(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        try:
            event = build_event(data)
        except (TypeError, ValueError) as exc:
            raise _BadRequest(f"malformed message: {exc}") from exc
        LOGGER.debug("Webhook %s from %s", event.logical_id, event.chat_identity)
        # Handlers may sleep for minutes; the bridge only needs an ack.
        self._schedule(event)
        return web.json_response({"status": "accepted"})

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "in_flight": len(self._tasks)})

    def _status_payload(self) -> dict[str, Any]:
        now = self._clock()
        context = self._runtime.active_context(now)
        return {
            "paused": self._runtime.paused,
            "auto_correct_enabled": self._runtime.auto_correct_enabled,
            "master_switch": self._contacts.global_settings().master_switch,
            "temporary_context": None
            if context is None
            else {
                "description": context.description,
                "expires_in_seconds": int(context.expires_at - now),
            },
            "in_flight": len(self._tasks),
            "uptime_seconds": int(now - self._started_at),
        }

    async def handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(self._status_payload())

    async def handle_control(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        action = data.get("action")
        if action == "pause":
            self._runtime.pause()
        elif action == "resume":
            self._runtime.resume()
        else:
            raise _BadRequest("action must be 'pause' or 'resume'")
        return web.json_response({"status": "ok", "paused": self._runtime.paused})

    async def handle_autocorrect(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        self._runtime.set_auto_correct(_require_bool(data, "enabled"))
        return web.json_response({"status": "ok", "auto_correct_enabled": self._runtime.auto_correct_enabled})

    async def handle_set_context(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        description = str(data.get("context") or "").strip()
        if not description:
            raise _BadRequest("'context' is required")
        ttl = self._context_ttl
        if data.get("duration_minutes") is not None:
            try:
                ttl = float(data["duration_minutes"]) * 60
            except (TypeError, ValueError) as exc:
                raise _BadRequest("'duration_minutes' must be a number") from exc
            if ttl <= 0:
                raise _BadRequest("'duration_minutes' must be positive")
        context = self._runtime.set_context(description, ttl)
        return web.json_response(
            {"status": "ok", "context": context.description, "expires_at": context.expires_at}
        )

    async def handle_clear_context(self, request: web.Request) -> web.Response:
        self._runtime.clear_context()
        return web.json_response({"status": "ok"})

    async def handle_master_switch(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        enabled = _require_bool(data, "enabled")
        self._contacts.set_master_switch(enabled)
        return web.json_response({"status": "ok", "master_switch": enabled})

    async def handle_list_contacts(self, request: web.Request) -> web.Response:
        return web.json_response(self._contacts.export())

    async def handle_add_contact(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        contact_id = str(data.pop("id", "") or "").strip()
        if not contact_id:
            raise _BadRequest("'id' is required")
        try:
            entry = self._contacts.add_contact(contact_id, data)
        except ValueError as exc:
            return _error(str(exc), 409)
        return web.json_response({"status": "ok", "id": contact_id, "contact": entry}, status=201)

    async def handle_get_contact(self, request: web.Request) -> web.Response:
        contact_id = request.match_info["contact_id"]
        try:
            return web.json_response(self._contacts.get_contact(contact_id))
        except KeyError:
            return _error(f"unknown contact {contact_id}", 404)

    async def handle_update_contact(self, request: web.Request) -> web.Response:
        contact_id = request.match_info["contact_id"]
        data = await _read_json(request)
        data.pop("id", None)
        try:
            entry = self._contacts.update_contact(contact_id, data)
        except KeyError:
            return _error(f"unknown contact {contact_id}", 404)
        return web.json_response({"status": "ok", "contact": entry})

    async def handle_delete_contact(self, request: web.Request) -> web.Response:
        contact_id = request.match_info["contact_id"]
        try:
            self._contacts.delete_contact(contact_id)
        except KeyError:
            return _error(f"unknown contact {contact_id}", 404)
        return web.json_response({"status": "ok"})

    async def handle_toggle_contact(self, request: web.Request) -> web.Response:
        contact_id = request.match_info["contact_id"]
        try:
            enabled = self._contacts.toggle_contact(contact_id)
        except KeyError:
            return _error(f"unknown contact {contact_id}", 404)
        return web.json_response({"status": "ok", "enabled": enabled})

    async def handle_contact_features(self, request: web.Request) -> web.Response:
        contact_id = request.match_info["contact_id"]
        data = await _read_json(request)
        try:
            features = self._contacts.set_features(contact_id, data)
        except KeyError:
            return _error(f"unknown contact {contact_id}", 404)
        return web.json_response({"status": "ok", "features": features})

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from adapters.whatsapp_bridge import WhatsAppBridge
from core.errors import EditWindowExpired, TransportError
from core.models import SentMessageRef


def _bridge_app(calls: list, edit_status: int = 200) -> web.Application:
    async def send(request: web.Request) -> web.Response:
        calls.append(("send", await request.json(), request.headers.get("Authorization")))
        return web.json_response({"id": "MSG1", "timestamp": 1_700_000_000_000})

    async def typing(request: web.Request) -> web.Response:
        calls.append(("typing", await request.json(), None))
        return web.json_response({"ok": True})

    async def messages(request: web.Request) -> web.Response:
        calls.append(("messages", dict(request.query), None))
        return web.json_response(
            {
                "messages": [
                    {"id": "H1", "from": "33611111111@c.us", "body": "coucou", "timestamp": 1_700_000_000},
                    {"id": "H2", "from": "33611111111@c.us", "body": "x", "timestamp": "soon"},
                ]
            }
        )

    async def edit(request: web.Request) -> web.Response:
        calls.append(("edit", await request.json(), None))
        return web.json_response({"edited": True}, status=edit_status)

    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    app = web.Application()
    app.router.add_post("/api/send", send)
    app.router.add_post("/api/typing", typing)
    app.router.add_get("/api/messages", messages)
    app.router.add_post("/api/edit", edit)
    app.router.add_get("/api/health", health)
    return app


def _run(app: web.Application, scenario, token=None) -> None:
    async def main() -> None:
        server = TestServer(app)
        await server.start_server()
        bridge = WhatsAppBridge(str(server.make_url("")), token=token)
        try:
            await scenario(bridge)
        finally:
            await bridge.close()
            await server.close()

    asyncio.run(main())


def test_send_typing_and_history() -> None:
    calls: list = []

    async def scenario(bridge: WhatsAppBridge) -> None:
        ref = await bridge.send_text("33611111111@c.us", "Salut")
        assert ref == SentMessageRef("MSG1", "33611111111@c.us", 1_700_000_000_000)

        await bridge.start_typing("33611111111@c.us")
        await bridge.stop_typing("33611111111@c.us")

        records = await bridge.fetch_recent_messages("33611111111@c.us", limit=5)
        assert [record.logical_id for record in records] == ["H1"]
        assert await bridge.health_check()

    _run(_bridge_app(calls), scenario, token="abc")

    assert calls[0] == ("send", {"chat_id": "33611111111@c.us", "text": "Salut"}, "Bearer abc")
    assert [call[1]["state"] for call in calls if call[0] == "typing"] == ["composing", "paused"]
    assert calls[3][1] == {"chat_id": "33611111111@c.us", "limit": "5"}


def test_edit_statuses() -> None:
    ref = SentMessageRef("MSG1", "33611111111@c.us", 0)

    async def edited(bridge: WhatsAppBridge) -> None:
        assert await bridge.edit_message(ref, "Salut") is True

    async def expired(bridge: WhatsAppBridge) -> None:
        with pytest.raises(EditWindowExpired):
            await bridge.edit_message(ref, "Salut")

    async def unsupported(bridge: WhatsAppBridge) -> None:
        assert await bridge.edit_message(ref, "Salut") is False

    async def broken(bridge: WhatsAppBridge) -> None:
        with pytest.raises(TransportError):
            await bridge.edit_message(ref, "Salut")

    _run(_bridge_app([]), edited)
    _run(_bridge_app([], edit_status=410), expired)
    _run(_bridge_app([], edit_status=501), unsupported)
    _run(_bridge_app([], edit_status=500), broken)


def test_unreachable_bridge_raises_transport_error() -> None:
    async def scenario() -> None:
        bridge = WhatsAppBridge("http://127.0.0.1:9", timeout_seconds=2)
        try:
            with pytest.raises(TransportError):
                await bridge.send_text("336", "x")
            assert not await bridge.health_check()
        finally:
            await bridge.close()

    asyncio.run(scenario())

from __future__ import annotations

import asyncio

import pytest

from core.commands import CommandRouter, is_self_addressed, parse
from core.config import CommandConfig
from core.models import AdminCommand, AssistantQuery
from core.outbox import TaggedSender
from core.runtime import RuntimeState
from core.tags import ResponseTagTracker

from fakes import OWNER, FakeRuntimeStore, FakeTransport, inbound, outbound

CONFIG = CommandConfig(owner_numbers=("33600000000",), context_ttl_seconds=3600)


def test_assistant_prefix_in_any_direction() -> None:
    assert parse(inbound("paf quelle heure est-il ?"), CONFIG) == AssistantQuery("quelle heure est-il ?")
    assert parse(outbound("Paf météo Paris"), CONFIG) == AssistantQuery("météo Paris")


def test_admin_verbs_need_outgoing_message() -> None:
    assert parse(inbound("bot pause"), CONFIG) is None
    assert parse(outbound("bot pause"), CONFIG) == AdminCommand("pause")
    assert parse(outbound("bot stop"), CONFIG) == AdminCommand("pause")
    assert parse(outbound("bot start"), CONFIG) == AdminCommand("resume")
    assert parse(outbound("bot aide"), CONFIG) == AdminCommand("help")


def test_self_addressed_messages_skip_prefix() -> None:
    event = outbound("status", chat_id=OWNER)

    assert is_self_addressed(event, CONFIG.owner_numbers)
    assert parse(event, CONFIG) == AdminCommand("status")
    assert parse(outbound("status"), CONFIG) is None


def test_owner_alias_counts_as_self() -> None:
    event = outbound("pause", chat_id="600000000@c.us")

    assert is_self_addressed(event, CONFIG.owner_numbers)


def test_context_commands() -> None:
    assert parse(outbound("bot context je conduis"), CONFIG) == AdminCommand("context_set", "je conduis")
    assert parse(outbound("bot context set au ciné"), CONFIG) == AdminCommand("context_set", "au ciné")
    assert parse(outbound("bot context clear"), CONFIG) == AdminCommand("context_clear")
    assert parse(outbound("bot context"), CONFIG) is None


def test_legacy_assistant_alias_and_unknown_text() -> None:
    assert parse(outbound("bot paf capitale du Pérou"), CONFIG) == AssistantQuery("capitale du Pérou")
    assert parse(outbound("bot pause maintenant"), CONFIG) is None
    assert parse(outbound("salut ça va"), CONFIG) is None
    assert parse(outbound(""), CONFIG) is None


def test_group_messages_carry_no_admin_commands() -> None:
    group = {"chat_id": "120363012345@g.us", "is_group": True}

    assert parse(outbound("bot pause", **group), CONFIG) is None
    assert parse(outbound("status", **group), CONFIG) is None
    assert parse(outbound("paf météo", **group), CONFIG) == AssistantQuery("météo")


def _router(clock=lambda: 1000.0):
    store = FakeRuntimeStore()
    runtime = RuntimeState(store, clock=clock)
    transport = FakeTransport()
    router = CommandRouter(runtime, TaggedSender(transport, ResponseTagTracker()), CONFIG, clock=clock)
    return router, runtime, transport, store


def test_pause_and_resume_are_acknowledged() -> None:
    router, runtime, transport, store = _router()
    event = outbound("bot pause", chat_id=OWNER)

    asyncio.run(router.execute(event, AdminCommand("pause")))
    assert runtime.paused
    assert store.flags.paused

    asyncio.run(router.execute(event, AdminCommand("resume")))
    assert not runtime.paused

    assert len(transport.sent) == 2
    assert all(text.startswith("🤖 ") for _, text in transport.sent)
    assert transport.sent[0][0] == OWNER


def test_command_applies_when_acknowledgement_fails() -> None:
    router, runtime, transport, store = _router()
    transport.failing_sends = 1

    asyncio.run(router.execute(outbound("bot pause", chat_id=OWNER), AdminCommand("pause")))

    assert runtime.paused
    assert store.flags.paused
    assert transport.sent == []


def test_context_set_reports_ttl_and_status() -> None:
    router, runtime, transport, _ = _router()
    event = outbound("bot context je conduis")

    asyncio.run(router.execute(event, AdminCommand("context_set", "je conduis")))

    assert runtime.active_context().description == "je conduis"
    assert "1h" in transport.sent[-1][1]
    assert "je conduis" in router.status_text()

    asyncio.run(router.execute(event, AdminCommand("context_clear")))
    assert runtime.active_context() is None
    assert "aucun" in router.status_text()


def test_unknown_verb_raises() -> None:
    router, _, transport, _ = _router()

    with pytest.raises(ValueError):
        asyncio.run(router.execute(outbound("bot x"), AdminCommand("explode")))
    assert transport.sent == []

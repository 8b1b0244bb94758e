from __future__ import annotations

import asyncio

from core.config import CommandConfig, CorrectionConfig
from core.correction import AutoCorrectionEngine, accepts
from core.errors import EditWindowExpired, OracleError, TransportError
from core.models import ContactFeatures, Direction, GlobalSettings, MessageRecord, RuntimeFlags, TypoVerdict
from core.runtime import RuntimeState
from core.tags import ResponseTagTracker

from fakes import FakeOracle, FakeProfiles, FakeRuntimeStore, FakeTransport, julie_profile, outbound

SENT_AT_MS = 1_700_000_000_000
GOOD_VERDICT = TypoVerdict(has_typos=True, corrected_text="Salut, ça va ?", confidence=90)


def _engine(profiles=None, verdict=GOOD_VERDICT, flags=None, age_seconds=10.0):
    oracle = FakeOracle(verdict=verdict)
    transport = FakeTransport()
    tags = ResponseTagTracker()
    runtime = RuntimeState(FakeRuntimeStore(flags))
    profiles = profiles or FakeProfiles({"33611111111": julie_profile(auto_correct=True)})
    engine = AutoCorrectionEngine(
        oracle,
        transport,
        profiles,
        runtime,
        tags,
        CorrectionConfig(),
        CommandConfig(),
        clock=lambda: SENT_AT_MS / 1000 + age_seconds,
    )
    return engine, oracle, transport, tags


def test_typo_is_edited_in_place() -> None:
    engine, oracle, transport, _ = _engine()

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.kind == "applied"
    assert outcome.corrected_text == "Salut, ça va ?"
    ref, text = transport.edits[0]
    assert ref.message_id == "out-1"
    assert text == "Salut, ça va ?"
    assert oracle.typo_calls[0][0] == "Slaut, ça va ?"


def test_context_excludes_the_message_itself_and_later_ones() -> None:
    engine, oracle, transport, _ = _engine()
    transport.history = [
        MessageRecord("a", "33611111111", Direction.INBOUND, "tu fais quoi", SENT_AT_MS - 5000),
        MessageRecord("out-1", "33611111111", Direction.OUTBOUND, "Slaut, ça va ?", SENT_AT_MS),
        MessageRecord("b", "33611111111", Direction.INBOUND, "plus tard", SENT_AT_MS + 5000),
    ]

    asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    context = oracle.typo_calls[0][1]
    assert [record.logical_id for record in context] == ["a"]


def test_bot_authored_message_is_never_corrected() -> None:
    engine, oracle, transport, tags = _engine()
    tags.tag("out-1")

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.kind == "none" and outcome.reason == "bot-authored"
    assert oracle.typo_calls == []
    assert transport.edits == []


def test_exclusions() -> None:
    engine, oracle, _, _ = _engine()

    reasons = [
        asyncio.run(engine.maybe_correct(event)).reason
        for event in (
            outbound("bot status", ids=("x1",), timestamp_ms=SENT_AT_MS),
            outbound("paf la météo", ids=("x2",), timestamp_ms=SENT_AT_MS),
            outbound("🤖 réponse", ids=("x3",), timestamp_ms=SENT_AT_MS),
            outbound("Slaut à tous", ids=("x4",), timestamp_ms=SENT_AT_MS, is_group=True),
            outbound("ok", ids=("x5",), timestamp_ms=SENT_AT_MS),
        )
    ]

    assert reasons == ["command", "assistant", "assistant", "group", "too short"]
    assert oracle.typo_calls == []


def test_profile_setting_wins_over_runtime_flag() -> None:
    profiles = FakeProfiles({"33611111111": julie_profile(auto_correct=False)})
    engine, oracle, _, _ = _engine(profiles=profiles, flags=RuntimeFlags(auto_correct_enabled=True))

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.reason == "disabled"
    assert oracle.typo_calls == []


def test_unknown_recipient_uses_runtime_flag_or_default() -> None:
    engine, _, _, _ = _engine(profiles=FakeProfiles(), flags=RuntimeFlags(auto_correct_enabled=True))
    assert engine.is_enabled_for("33699999999")

    engine, _, _, _ = _engine(profiles=FakeProfiles())
    assert not engine.is_enabled_for("33699999999")

    defaults = GlobalSettings(default_features=ContactFeatures(auto_reply=False, auto_correct=True))
    engine, _, _, _ = _engine(profiles=FakeProfiles(settings=defaults))
    assert engine.is_enabled_for("33699999999")


def test_confidence_must_exceed_threshold() -> None:
    assert not accepts(TypoVerdict(True, "Salut", 70), "Slaut", 70)
    assert accepts(TypoVerdict(True, "Salut", 71), "Slaut", 70)
    assert not accepts(TypoVerdict(True, "  Slaut ", 99), "Slaut", 70)
    assert not accepts(TypoVerdict(False, "Salut", 99), "Slaut", 70)
    assert not accepts(TypoVerdict(True, "   ", 99), "Slaut", 70)


def test_low_confidence_means_no_edit() -> None:
    engine, _, transport, _ = _engine(verdict=TypoVerdict(True, "Salut, ça va ?", 50))

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.kind == "none"
    assert transport.edits == []


def test_old_message_is_not_checked() -> None:
    engine, oracle, _, _ = _engine(age_seconds=16 * 60)

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.reason == "too old"
    assert oracle.typo_calls == []


def test_oracle_failure_is_silent() -> None:
    engine, oracle, transport, _ = _engine()
    oracle.error = OracleError("boom")

    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", timestamp_ms=SENT_AT_MS)))

    assert outcome.kind == "none" and outcome.reason == "oracle failure"
    assert transport.edits == []


def test_edit_failures_are_reported() -> None:
    engine, _, transport, _ = _engine()
    transport.edit_error = EditWindowExpired("too late")
    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", ids=("e1",), timestamp_ms=SENT_AT_MS)))
    assert outcome.kind == "failed" and outcome.reason == "edit window expired"

    transport.edit_error = TransportError("down")
    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", ids=("e2",), timestamp_ms=SENT_AT_MS)))
    assert outcome.kind == "failed" and outcome.reason == "transport error"

    transport.edit_error = None
    transport.edit_result = False
    outcome = asyncio.run(engine.maybe_correct(outbound("Slaut, ça va ?", ids=("e3",), timestamp_ms=SENT_AT_MS)))
    assert outcome.kind == "failed" and outcome.reason == "edit unavailable"

"""Application entry point for the doppel auto-responder."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import random
import time
from logging.handlers import RotatingFileHandler
from typing import Callable, Optional

from aiohttp import web
from art import tprint
from dotenv import load_dotenv
from openai import AsyncOpenAI

import settings
from adapters.http_server import ControlServer
from adapters.json_store import JsonContactStore, JsonRuntimeStore
from adapters.openai_oracle import ModelSettings, OpenAIOracle
from adapters.sqlite_memory import SQLiteMemoryLog
from adapters.whatsapp_bridge import WhatsAppBridge
from core.assistant import AssistantResponder
from core.commands import CommandRouter
from core.config import (
    DEFAULT_CONTEXT_FLOORS,
    CommandConfig,
    ContextFloor,
    CorrectionConfig,
    PacingConfig,
    ReplyConfig,
    TrackingConfig,
)
from core.correction import AutoCorrectionEngine
from core.dedup import MessageDeduplicator
from core.outbox import TaggedSender
from core.pacing import ConversationPhaseScheduler
from core.ports import CompletionOracle, MemoryLog, ProfileStore, TransportPort
from core.processor import MessageProcessor
from core.replies import AutoReplyOrchestrator
from core.runtime import RuntimeState
from core.tags import ResponseTagTracker

NAME = "DOPPEL"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/doppel.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # aiohttp logs every webhook hit at INFO.
    logging.getLogger("aiohttp.access").setLevel(max(level, logging.WARNING))


def _context_floors() -> tuple[ContextFloor, ...]:
    raw = settings.PACING_CONTEXT_FLOORS
    if raw is None:
        return DEFAULT_CONTEXT_FLOORS
    return tuple(
        ContextFloor(
            keywords=tuple(str(keyword).lower() for keyword in entry.get("keywords", [])),
            min_seconds=float(entry["min_seconds"]),
            max_seconds=float(entry["max_seconds"]),
        )
        for entry in raw
    )


def _pacing_config() -> PacingConfig:
    return PacingConfig(
        active_thinking=settings.PACING_ACTIVE_THINKING,
        active_typing=settings.PACING_ACTIVE_TYPING,
        busy_thinking=settings.PACING_BUSY_THINKING,
        busy_typing=settings.PACING_BUSY_TYPING,
        active_messages=settings.PACING_ACTIVE_MESSAGES,
        busy_messages=settings.PACING_BUSY_MESSAGES,
        idle_reset_seconds=settings.PACING_IDLE_RESET_MINUTES * 60,
        seconds_per_char=settings.PACING_SECONDS_PER_CHAR,
        length_cap_seconds=settings.PACING_LENGTH_CAP_SECONDS,
        context_floors=_context_floors(),
    )


def _command_config() -> CommandConfig:
    return CommandConfig(
        command_prefix=settings.COMMAND_PREFIX,
        assistant_prefix=settings.ASSISTANT_PREFIX,
        assistant_marker=settings.ASSISTANT_MARKER,
        owner_numbers=settings.OWNER_NUMBERS,
        context_ttl_seconds=settings.COMMAND_CONTEXT_TTL_MINUTES * 60,
    )


def _correction_config() -> CorrectionConfig:
    return CorrectionConfig(
        min_confidence=settings.CORRECTION_MIN_CONFIDENCE,
        min_length=settings.CORRECTION_MIN_LENGTH,
        context_messages=settings.CORRECTION_CONTEXT_MESSAGES,
        edit_window_seconds=settings.CORRECTION_EDIT_WINDOW_MINUTES * 60,
    )


def _reply_config() -> ReplyConfig:
    return ReplyConfig(
        owner_name=settings.OWNER_NAME,
        history_fetch=settings.REPLY_HISTORY_FETCH,
        history_window=settings.REPLY_HISTORY_WINDOW,
        fallback_message=settings.REPLY_FALLBACK_MESSAGE,
        excuses=settings.REPLY_EXCUSES,
        media_reactions=settings.REPLY_MEDIA_REACTIONS,
    )


def _tracking_config() -> TrackingConfig:
    return TrackingConfig(
        dedup_capacity=settings.DEDUP_CAPACITY,
        tag_capacity=settings.TAG_CAPACITY,
        sweep_interval_seconds=settings.SWEEP_INTERVAL_MINUTES * 60,
        flags_refresh_seconds=settings.FLAGS_REFRESH_SECONDS,
    )


def build_processor(
    transport: TransportPort,
    oracle: CompletionOracle,
    profiles: ProfileStore,
    runtime: RuntimeState,
    memory: Optional[MemoryLog],
    pacing: PacingConfig,
    commands: CommandConfig,
    correction: CorrectionConfig,
    replies: ReplyConfig,
    tracking: TrackingConfig,
) -> MessageProcessor:
    """Wire the core components around one transport and one oracle."""

    rng = random.Random()
    tags = ResponseTagTracker(tracking.tag_capacity)
    sender = TaggedSender(transport, tags)
    scheduler = ConversationPhaseScheduler(pacing, rng=rng)
    return MessageProcessor(
        deduplicator=MessageDeduplicator(tracking.dedup_capacity),
        commands=commands,
        router=CommandRouter(runtime, sender, commands),
        assistant=AssistantResponder(oracle, transport, sender, commands, replies),
        correction=AutoCorrectionEngine(
            oracle, transport, profiles, runtime, tags, correction, commands
        ),
        replies=AutoReplyOrchestrator(
            oracle, transport, sender, profiles, runtime, scheduler, memory, replies, rng=rng
        ),
        sender=sender,
        excuses=replies.excuses,
        scheduler=scheduler,
        tags=tags,
        rng=rng,
    )


async def _every(seconds: float, action: Callable[[], None], label: str) -> None:
    logger = logging.getLogger(__name__)
    while True:
        await asyncio.sleep(seconds)
        try:
            action()
        except Exception:
            logger.exception("Periodic %s failed", label)


async def _serve() -> None:
    logger = logging.getLogger(__name__)

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is required")

    tracking = _tracking_config()
    runtime = RuntimeState(JsonRuntimeStore(settings.STATE_PATH))
    contacts = JsonContactStore(settings.CONTACTS_PATH, cache_seconds=settings.CONTACTS_CACHE_SECONDS)
    memory = SQLiteMemoryLog(settings.DB_PATH, keep_per_chat=settings.REPLY_MEMORY_PER_CHAT)
    memory.init_db()

    bridge = WhatsAppBridge(
        settings.BRIDGE_URL,
        token=os.getenv("BRIDGE_TOKEN"),
        timeout_seconds=settings.BRIDGE_TIMEOUT_SECONDS,
    )
    oracle = OpenAIOracle(
        AsyncOpenAI(api_key=api_key),
        reply=ModelSettings(
            settings.OPENAI_REPLY_MODEL,
            settings.OPENAI_REPLY_TEMPERATURE,
            settings.OPENAI_REPLY_MAX_TOKENS,
        ),
        assistant=ModelSettings(
            settings.OPENAI_ASSISTANT_MODEL,
            settings.OPENAI_ASSISTANT_TEMPERATURE,
            settings.OPENAI_ASSISTANT_MAX_TOKENS,
        ),
        correction=ModelSettings(
            settings.OPENAI_CORRECTION_MODEL,
            settings.OPENAI_CORRECTION_TEMPERATURE,
            settings.OPENAI_CORRECTION_MAX_TOKENS,
        ),
    )
    processor = build_processor(
        transport=bridge,
        oracle=oracle,
        profiles=contacts,
        runtime=runtime,
        memory=memory,
        pacing=_pacing_config(),
        commands=_command_config(),
        correction=_correction_config(),
        replies=_reply_config(),
        tracking=tracking,
    )

    server = ControlServer(
        processor.handle,
        runtime,
        contacts,
        context_ttl_seconds=settings.API_CONTEXT_TTL_MINUTES * 60,
        webhook_secret=os.getenv("WEBHOOK_SECRET"),
        api_token=os.getenv("CONTROL_API_TOKEN"),
    )
    runner = web.AppRunner(server.build_app())
    await runner.setup()
    site = web.TCPSite(runner, settings.SERVER_HOST, settings.SERVER_PORT)
    await site.start()

    if await bridge.health_check():
        logger.info("Bridge reachable at %s", settings.BRIDGE_URL)
    else:
        logger.warning("Bridge not reachable at %s; messages will fail until it is up", settings.BRIDGE_URL)

    # Sweeps replace whole structures, so in-flight handlers keep a valid view.
    background = [
        asyncio.create_task(_every(tracking.sweep_interval_seconds, processor.sweep, "sweep")),
        asyncio.create_task(_every(tracking.flags_refresh_seconds, runtime.reload, "flags refresh")),
    ]
    logger.info(
        "Listening on %s:%s (paused=%s, auto_correct=%s)",
        settings.SERVER_HOST,
        settings.SERVER_PORT,
        runtime.paused,
        runtime.auto_correct_enabled,
    )
    try:
        await asyncio.Event().wait()
    finally:
        for task in background:
            task.cancel()
        await runner.cleanup()
        await bridge.close()
        logger.info("Stopped")


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting doppel")
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        pass


def _setup() -> None:
    _print_banner()
    from frontend.app import ConfigPanelApp

    ConfigPanelApp().run()


def _status() -> None:
    flags = RuntimeState(JsonRuntimeStore(settings.STATE_PATH)).flags
    contacts = JsonContactStore(settings.CONTACTS_PATH)
    global_settings = contacts.global_settings()
    print(f"paused: {flags.paused}")
    print(f"auto-correct: {flags.auto_correct_enabled}")
    print(f"master switch: {global_settings.master_switch}")
    print(f"default enabled: {global_settings.default_enabled}")
    context = flags.temporary_context
    if context is not None and context.is_active(time.time()):
        minutes = int((context.expires_at - time.time()) // 60)
        print(f"context: {context.description} ({minutes} min left)")
    else:
        print("context: none")
    enabled = [
        entry.get("name", contact_id)
        for contact_id, entry in contacts.list_contacts().items()
        if entry.get("enabled")
    ]
    print(f"enabled contacts: {', '.join(enabled) if enabled else 'none'}")


def main(argv: Optional[list[str]] = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="doppel")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the auto-responder")
    subparsers.add_parser("config", help="Launch the config TUI")
    subparsers.add_parser("status", help="Print persisted runtime flags")

    args = parser.parse_args(argv)
    if args.command == "config":
        _setup()
        return
    if args.command == "status":
        _status()
        return
    _run()


if __name__ == "__main__":
    main()

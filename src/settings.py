"""Static configuration for doppel.

All user-editable settings (owner, pacing, correction, replies, storage,
logging) live in a single JSON file for quick edits without touching Python.
Secrets stay in the environment (.env).
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# DOPPEL_CONFIG lets several bot instances share one checkout.
CONFIG_PATH = os.getenv("DOPPEL_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(PROJECT_ROOT, path)


def _range(raw, default: tuple) -> tuple:
    if not raw:
        return default
    low, high = raw
    return (low, high)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# The owner is the person the bot impersonates. Numbers are aliases used to
# recognize self-addressed command messages.
_owner = _CONFIG.get("owner", {})
OWNER_NAME = _owner.get("name", "Moi")
OWNER_NUMBERS = tuple(str(number) for number in _owner.get("numbers", []))

# Reserved prefixes. The command prefix only counts on outgoing messages.
_commands = _CONFIG.get("commands", {})
COMMAND_PREFIX = _commands.get("command_prefix", "bot ")
ASSISTANT_PREFIX = _commands.get("assistant_prefix", "paf ")
ASSISTANT_MARKER = _commands.get("assistant_marker", "🤖")
COMMAND_CONTEXT_TTL_MINUTES = float(_commands.get("context_ttl_minutes", 240))

# Pacing ranges are in seconds; message thresholds are counted in replies.
_pacing = _CONFIG.get("pacing", {})
PACING_ACTIVE_THINKING = _range(_pacing.get("active_thinking"), (3.0, 8.0))
PACING_ACTIVE_TYPING = _range(_pacing.get("active_typing"), (1.0, 3.0))
PACING_BUSY_THINKING = _range(_pacing.get("busy_thinking"), (60.0, 300.0))
PACING_BUSY_TYPING = _range(_pacing.get("busy_typing"), (2.0, 5.0))
PACING_ACTIVE_MESSAGES = tuple(int(value) for value in _range(_pacing.get("active_messages"), (3, 5)))
PACING_BUSY_MESSAGES = tuple(int(value) for value in _range(_pacing.get("busy_messages"), (1, 2)))
PACING_IDLE_RESET_MINUTES = float(_pacing.get("idle_reset_minutes", 10))
PACING_SECONDS_PER_CHAR = float(_pacing.get("seconds_per_char", 0.03))
PACING_LENGTH_CAP_SECONDS = float(_pacing.get("length_cap_seconds", 3.0))
# Each floor: {"keywords": [...], "min_seconds": x, "max_seconds": y}
PACING_CONTEXT_FLOORS = _pacing.get("context_floors")

# Auto-correction thresholds.
_correction = _CONFIG.get("correction", {})
CORRECTION_MIN_CONFIDENCE = int(_correction.get("min_confidence", 70))
CORRECTION_MIN_LENGTH = int(_correction.get("min_length", 6))
CORRECTION_CONTEXT_MESSAGES = int(_correction.get("context_messages", 5))
CORRECTION_EDIT_WINDOW_MINUTES = float(_correction.get("edit_window_minutes", 15))

# Reply behavior and the user-visible failure strings.
_replies = _CONFIG.get("replies", {})
REPLY_HISTORY_FETCH = int(_replies.get("history_fetch", 15))
REPLY_HISTORY_WINDOW = int(_replies.get("history_window", 10))
REPLY_FALLBACK_MESSAGE = _replies.get("fallback_message", "Désolé, mon téléphone bug un peu là")
REPLY_EXCUSES = tuple(_replies.get("excuses", ["mon tel beugue"]))
REPLY_MEDIA_REACTIONS = {
    media_type: tuple(pool) for media_type, pool in _replies.get("media_reactions", {}).items()
}
REPLY_MEMORY_PER_CHAT = int(_replies.get("memory_per_chat", 50))

# In-memory tracking bounds and the periodic sweep.
_tracking = _CONFIG.get("tracking", {})
DEDUP_CAPACITY = int(_tracking.get("dedup_capacity", 5000))
TAG_CAPACITY = int(_tracking.get("tag_capacity", 500))
SWEEP_INTERVAL_MINUTES = float(_tracking.get("sweep_interval_minutes", 120))
FLAGS_REFRESH_SECONDS = float(_tracking.get("flags_refresh_seconds", 30))
CONTACTS_CACHE_SECONDS = float(_tracking.get("contacts_cache_seconds", 60))

# The WhatsApp bridge owns the session; we only talk to its REST API.
_bridge = _CONFIG.get("bridge", {})
BRIDGE_URL = _bridge.get("base_url", "http://127.0.0.1:3000")
BRIDGE_TIMEOUT_SECONDS = float(_bridge.get("timeout_seconds", 15))

# Webhook + control API listener.
_server = _CONFIG.get("server", {})
SERVER_HOST = _server.get("host", "127.0.0.1")
SERVER_PORT = int(_server.get("port", 8765))
API_CONTEXT_TTL_MINUTES = float(_server.get("api_context_ttl_minutes", 30))

# Model choices per use.
_openai = _CONFIG.get("openai", {})
OPENAI_REPLY_MODEL = _openai.get("reply_model", "gpt-4o")
OPENAI_REPLY_TEMPERATURE = float(_openai.get("reply_temperature", 0.9))
OPENAI_REPLY_MAX_TOKENS = int(_openai.get("reply_max_tokens", 150))
OPENAI_ASSISTANT_MODEL = _openai.get("assistant_model", "gpt-4o")
OPENAI_ASSISTANT_TEMPERATURE = float(_openai.get("assistant_temperature", 0.7))
OPENAI_ASSISTANT_MAX_TOKENS = int(_openai.get("assistant_max_tokens", 800))
OPENAI_CORRECTION_MODEL = _openai.get("correction_model", "gpt-4o-mini")
OPENAI_CORRECTION_TEMPERATURE = float(_openai.get("correction_temperature", 0.1))
OPENAI_CORRECTION_MAX_TOKENS = int(_openai.get("correction_max_tokens", 300))

# File locations, relative to the project root unless absolute.
_storage = _CONFIG.get("storage", {})
CONTACTS_PATH = _project_path(_storage.get("contacts_path", "contacts.json"))
STATE_PATH = _project_path(_storage.get("state_path", "bot-state.json"))
DB_PATH = _project_path(_storage.get("db_path", "doppel.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

"""Static configuration for the squabble agent.

All user-editable settings (triggers, buy-in rules, sessions, replies, API,
logging) live in a single JSON file for quick edits without touching
Python. Secrets stay in the environment (.env).
"""

import json
import os
from decimal import Decimal

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("SQUABBLE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Substrings that make the agent engage, and the bot-style mentions that only
# earn a help hint.
TRIGGERS = tuple(_CONFIG.get("triggers", ["@squabble", "@squabble.base.eth"]))
BOT_MENTIONS = tuple(_CONFIG.get("bot_mentions", ["/bot", "/agent", "/ai", "/help"]))

# How many recent messages to search when resolving a reply reference.
HISTORY_WINDOW = int(_CONFIG.get("history_window", 100))

# Buy-ins below the minimum are refused before the game server is called.
_buy_in = _CONFIG.get("buy_in", {})
MINIMUM_BUY_IN = Decimal(str(_buy_in.get("minimum", "0.5")))

# Upper bound for every outbound call to the game server and the oracle.
_http = _CONFIG.get("http", {})
HTTP_TIMEOUT_SECONDS = float(_http.get("timeout_seconds", 15))

# Session memory bounds:
# - ttl_seconds: idle time before a session is forgotten
# - max_entries: least recently used sessions go first beyond this
# - history_turns: dialogue turns remembered for the oracle
_sessions = _CONFIG.get("sessions", {})
SESSION_TTL_SECONDS = float(_sessions.get("ttl_seconds", 1800))
SESSION_MAX_ENTRIES = int(_sessions.get("max_entries", 1000))
SESSION_HISTORY_TURNS = int(_sessions.get("history_turns", 10))

# Interpreter strategy: "rules" (deterministic) or "oracle" (OpenAI tool calls).
_interpreter = _CONFIG.get("interpreter", {})
INTERPRETER_STRATEGY = _interpreter.get("strategy", "rules")
ORACLE_MODEL = _interpreter.get("model", "gpt-4o-mini")

# Reply policies for the conversational side paths.
_replies = _CONFIG.get("replies", {})
UNRECOGNIZED_POLICY = _replies.get("unrecognized", "fallback")
DM_INTRO = bool(_replies.get("dm_intro", True))
WELCOME = bool(_replies.get("welcome", True))

# Admin HTTP API.
_api = _CONFIG.get("api", {})
API_ENABLED = bool(_api.get("enabled", True))
API_HOST = _api.get("host", "0.0.0.0")
API_PORT = int(os.getenv("PORT") or _api.get("port", 8080))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

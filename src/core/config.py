"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

DEFAULT_TRIGGERS = ("@squabble", "@squabble.base.eth")
DEFAULT_BOT_MENTIONS = ("/bot", "/agent", "/ai", "/help")

UNRECOGNIZED_FALLBACK = "fallback"
UNRECOGNIZED_SILENT = "silent"


@dataclass(frozen=True)
class TriggerConfig:
    """Trigger detection settings for the classifier and hint path."""

    triggers: tuple[str, ...] = DEFAULT_TRIGGERS
    bot_mentions: tuple[str, ...] = DEFAULT_BOT_MENTIONS
    history_window: int = 100


@dataclass(frozen=True)
class ExecutorConfig:
    """Business rules applied when executing intents."""

    game_url_base: str
    minimum_buy_in: Decimal = Decimal("0.5")
    unrecognized_policy: str = UNRECOGNIZED_FALLBACK


@dataclass(frozen=True)
class SessionConfig:
    """Lifecycle bounds for per-user interpreter memory."""

    ttl_seconds: float = 1800.0
    max_entries: int = 1000
    history_turns: int = 10


@dataclass(frozen=True)
class DispatchConfig:
    """Optional conversational niceties around the main intent flow."""

    dm_intro: bool = True
    welcome: bool = True

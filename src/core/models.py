"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class ContentType(str, Enum):
    """Envelope shape of an inbound message."""

    TEXT = "text"
    REPLY = "reply"
    REACTION = "reaction"
    OTHER = "other"


class ConversationKind(str, Enum):
    """Whether a conversation is a one-to-one chat or a group."""

    DIRECT = "dm"
    GROUP = "group"


@dataclass(frozen=True)
class InboundMessage:
    """A single delivered chat event, as seen by the dispatch loop."""

    message_id: str
    sender_id: str
    conversation_id: str
    content_type: ContentType
    payload: Any
    reply_reference: Optional[str] = None
    conversation_kind: ConversationKind = ConversationKind.GROUP
    thread_id: Optional[int] = None


@dataclass(frozen=True)
class HistoryEntry:
    """Minimal view of a past message used for reply-chain resolution."""

    message_id: str
    sender_id: str


@dataclass(frozen=True)
class ConversationContext:
    """Where a reply should go."""

    conversation_id: str
    kind: ConversationKind
    thread_id: Optional[int] = None


@dataclass(frozen=True)
class ConversationSummary:
    """Conversation listing row exposed by the admin API."""

    conversation_id: str
    kind: ConversationKind
    title: str
    consent_state: str


# Buy-in variants


@dataclass(frozen=True)
class NoBuyIn:
    pass


@dataclass(frozen=True)
class Amount:
    value: Decimal
    currency: str = "USDC"


@dataclass(frozen=True)
class Invalid:
    raw_text: str


BuyInSpec = Union[NoBuyIn, Amount, Invalid]


# Intent variants


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class StartGame:
    buy_in: BuyInSpec


@dataclass(frozen=True)
class Leaderboard:
    pass


@dataclass(frozen=True)
class LatestGame:
    pass


@dataclass(frozen=True)
class NeedsBuyInClarification:
    pass


@dataclass(frozen=True)
class Unrecognized:
    """No command matched.

    ``suggestion`` carries free text proposed by the oracle, when one was
    consulted and answered without picking a tool.
    """

    suggestion: Optional[str] = None


Intent = Union[Help, StartGame, Leaderboard, LatestGame, NeedsBuyInClarification, Unrecognized]


# Execution results


@dataclass(frozen=True)
class DirectlySent:
    """The executor already delivered everything; the loop sends nothing."""

    note: str


@dataclass(frozen=True)
class ReplyText:
    """The loop must send exactly this text."""

    text: str


ExecutionResult = Union[DirectlySent, ReplyText]


# Game server records


@dataclass(frozen=True)
class GameRecord:
    """A game as returned by the game server; only the id is interpreted."""

    game_id: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class LeaderboardEntry:
    address: str
    display_name: str
    username: str
    points: int
    wins: int
    total_games: int
    total_winnings: Decimal = Decimal("0")


@dataclass(frozen=True)
class LeaderboardReport:
    entries: list[LeaderboardEntry]
    total_finished_games: int

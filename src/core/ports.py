"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the messaging transport, the game
server and the language-model oracle so that the core can be reused with
different backends and tested with fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from core.models import (
    ConversationContext,
    ConversationKind,
    ConversationSummary,
    GameRecord,
    HistoryEntry,
    LeaderboardReport,
)


class HistoryPort(Protocol):
    """Bounded look-back into a conversation's recent messages."""

    async def recent_messages(self, conversation_id: str, limit: int) -> list[HistoryEntry]:
        ...

    async def find_message(
        self, conversation_id: str, message_id: str, window: int
    ) -> Optional[HistoryEntry]:
        """Return the message if it is among the ``window`` most recent ones."""
        ...


class TransportPort(HistoryPort, Protocol):
    """Messaging operations required by the dispatch loop and executor."""

    async def agent_id(self) -> str:
        ...

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationContext]:
        ...

    async def send(self, conversation_id: str, text: str, thread_id: Optional[int] = None) -> None:
        ...

    async def list_conversations(
        self,
        kinds: Sequence[ConversationKind],
        consent_states: Sequence[str],
    ) -> list[ConversationSummary]:
        ...


class GameServerPort(Protocol):
    """Game server endpoints the executor calls."""

    async def create_game(self, bet_amount: Decimal, conversation_id: str) -> GameRecord:
        ...

    async def get_leaderboard(self, conversation_id: str) -> LeaderboardReport:
        ...

    async def get_latest_game(self) -> GameRecord:
        ...


@dataclass(frozen=True)
class OracleTurn:
    """One remembered dialogue turn handed to the oracle."""

    role: str
    content: str


@dataclass(frozen=True)
class OracleChoice:
    """The oracle's answer: a tool to run, or free text, or both empty."""

    tool: Optional[str] = None
    arguments: dict[str, Any] = field(default_factory=dict)
    text: str = ""


class OraclePort(Protocol):
    """Opaque text-classification service."""

    async def choose_tool(self, text: str, history: Sequence[OracleTurn]) -> OracleChoice:
        ...

"""Per-user interpreter memory (core domain).

Sessions are keyed by (user, conversation) and hold the short-term state
needed to resolve follow-ups such as a bare "0.5" after the agent asked for
a buy-in. The store also hands out one ``asyncio.Lock`` per user so that one
sender's messages are handled one at a time, in arrival order.

Lifecycle: created on first use, dropped after ``ttl_seconds`` of
inactivity, and the least recently used entry is evicted once the store
holds ``max_entries`` sessions.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Deque, Optional

from core.config import SessionConfig
from core.models import Amount, Help, Intent, NeedsBuyInClarification, NoBuyIn, StartGame
from core.ports import OracleTurn

LOGGER = logging.getLogger(__name__)

SessionKey = tuple[str, str]


@dataclass
class ConversationSession:
    """Mutable dialogue state for one user in one conversation."""

    user_id: str
    conversation_id: str
    history_turns: int = 10
    awaiting_buy_in: bool = False
    last_active: float = 0.0
    turns: Deque[OracleTurn] = field(default_factory=deque)

    def record_turn(self, role: str, content: str) -> None:
        if self.history_turns <= 0 or not content:
            return
        self.turns.append(OracleTurn(role=role, content=content))
        while len(self.turns) > self.history_turns:
            self.turns.popleft()

    def advance(self, intent: Intent) -> None:
        """Update the pending-question flag after an intent was executed.

        Only a help turn or a start request without a usable amount leaves
        the agent waiting for a buy-in; anything else clears it.
        """

        if isinstance(intent, StartGame):
            self.awaiting_buy_in = not isinstance(intent.buy_in, (Amount, NoBuyIn))
            return
        self.awaiting_buy_in = isinstance(intent, (Help, NeedsBuyInClarification))


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class SessionStore:
    """Keyed store of ``ConversationSession`` plus per-user locks."""

    def __init__(
        self,
        config: SessionConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._clock = clock
        self._sessions: OrderedDict[SessionKey, ConversationSession] = OrderedDict()
        self._locks: dict[str, _UserLock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    @asynccontextmanager
    async def serialized(self, user_id: str) -> AsyncIterator[None]:
        """Hold this user's lock for the duration of the block."""

        entry = self._locks.get(user_id)
        if entry is None:
            entry = _UserLock()
            self._locks[user_id] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1

    def get(self, user_id: str, conversation_id: str) -> ConversationSession:
        """Return the session for (user, conversation), creating it if needed."""

        now = self._clock()
        self.evict_expired(now)

        key = (user_id, conversation_id)
        session = self._sessions.get(key)
        if session is None:
            session = ConversationSession(
                user_id=user_id,
                conversation_id=conversation_id,
                history_turns=self._config.history_turns,
            )
            self._sessions[key] = session
            self._evict_overflow()
        else:
            self._sessions.move_to_end(key)
        session.last_active = now
        return session

    def peek(self, user_id: str, conversation_id: str) -> Optional[ConversationSession]:
        return self._sessions.get((user_id, conversation_id))

    def evict_expired(self, now: Optional[float] = None) -> int:
        """Drop sessions idle for longer than the TTL; return how many went."""

        if now is None:
            now = self._clock()
        ttl = self._config.ttl_seconds
        if ttl <= 0:
            return 0

        expired = [key for key, s in self._sessions.items() if now - s.last_active > ttl]
        for key in expired:
            del self._sessions[key]
        if expired:
            self._prune_locks()
            LOGGER.debug("Evicted %s idle sessions", len(expired))
        return len(expired)

    def _evict_overflow(self) -> None:
        limit = self._config.max_entries
        if limit <= 0:
            return
        while len(self._sessions) > limit:
            key, _ = self._sessions.popitem(last=False)
            LOGGER.debug("Session store full, evicted %s", key)
        self._prune_locks()

    def _prune_locks(self) -> None:
        active_users = {user for user, _ in self._sessions}
        for user_id in list(self._locks):
            if user_id not in active_users and self._locks[user_id].holders == 0:
                del self._locks[user_id]

from __future__ import annotations

import asyncio
from decimal import Decimal

from core.config import SessionConfig
from core.models import (
    Amount,
    Help,
    Invalid,
    Leaderboard,
    NeedsBuyInClarification,
    NoBuyIn,
    StartGame,
)
from core.sessions import ConversationSession, SessionStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_get_creates_and_reuses_sessions() -> None:
    store = SessionStore(SessionConfig())

    first = store.get("u1", "c1")
    again = store.get("u1", "c1")
    other = store.get("u1", "c2")

    assert first is again
    assert other is not first
    assert len(store) == 2


def test_idle_sessions_expire_after_ttl() -> None:
    clock = FakeClock()
    store = SessionStore(SessionConfig(ttl_seconds=1800), clock=clock)
    session = store.get("u1", "c1")
    session.awaiting_buy_in = True

    clock.now = 1800.0
    assert store.evict_expired() == 0

    clock.now = 1800.5
    fresh = store.get("u1", "c1")

    assert fresh is not session
    assert not fresh.awaiting_buy_in


def test_activity_keeps_session_alive() -> None:
    clock = FakeClock()
    store = SessionStore(SessionConfig(ttl_seconds=10), clock=clock)
    session = store.get("u1", "c1")

    clock.now = 8.0
    store.get("u1", "c1")
    clock.now = 16.0

    assert store.get("u1", "c1") is session


def test_least_recently_used_session_is_evicted() -> None:
    store = SessionStore(SessionConfig(max_entries=2))
    store.get("u1", "c1")
    store.get("u2", "c1")
    store.get("u1", "c1")
    store.get("u3", "c1")

    assert len(store) == 2
    assert store.peek("u2", "c1") is None
    assert store.peek("u1", "c1") is not None
    assert store.peek("u3", "c1") is not None


def test_advance_tracks_pending_buy_in() -> None:
    session = ConversationSession(user_id="u1", conversation_id="c1")

    session.advance(NeedsBuyInClarification())
    assert session.awaiting_buy_in

    session.advance(StartGame(Invalid("5 ETH")))
    assert session.awaiting_buy_in

    session.advance(StartGame(Amount(Decimal("1"))))
    assert not session.awaiting_buy_in

    session.advance(Help())
    assert session.awaiting_buy_in

    session.advance(Leaderboard())
    assert not session.awaiting_buy_in

    session.advance(Help())
    session.advance(StartGame(NoBuyIn()))
    assert not session.awaiting_buy_in


def test_record_turn_is_bounded() -> None:
    session = ConversationSession(user_id="u1", conversation_id="c1", history_turns=2)

    for index in range(5):
        session.record_turn("user", f"turn {index}")

    assert [turn.content for turn in session.turns] == ["turn 3", "turn 4"]


def test_same_user_is_serialized() -> None:
    store = SessionStore(SessionConfig())
    events: list[str] = []

    async def worker(name: str, user_id: str) -> None:
        async with store.serialized(user_id):
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    async def run() -> None:
        await asyncio.gather(worker("a", "u1"), worker("b", "u1"))

    asyncio.run(run())

    assert events == ["a start", "a end", "b start", "b end"]


def test_different_users_run_concurrently() -> None:
    store = SessionStore(SessionConfig())
    events: list[str] = []

    async def worker(name: str, user_id: str) -> None:
        async with store.serialized(user_id):
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    async def run() -> None:
        await asyncio.gather(worker("a", "u1"), worker("b", "u2"))

    asyncio.run(run())

    assert events[:2] == ["a start", "b start"]

"""Intent interpretation (core domain).

Two strategies share one contract, ``interpret(text, session) -> Intent``:

- ``RuleBasedInterpreter`` matches keywords and is fully deterministic.
- ``OracleInterpreter`` lets a language model pick one of four tools and
  maps the pick onto the same intents.

Both run buy-in text through ``core.buy_in`` so amounts are always parsed
by the same rules, whichever strategy classified the request.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Protocol

from core.buy_in import find_buy_in, is_buy_in_answer, parse_buy_in
from core.models import (
    BuyInSpec,
    Help,
    Intent,
    LatestGame,
    Leaderboard,
    NeedsBuyInClarification,
    StartGame,
    Unrecognized,
)
from core.ports import OraclePort
from core.sessions import ConversationSession
from core.triggers import normalize_keywords, strip_triggers

LOGGER = logging.getLogger(__name__)

TOOL_HELP = "squabble_help"
TOOL_START_GAME = "squabble_start_game"
TOOL_LEADERBOARD = "squabble_leaderboard"
TOOL_LATEST_GAME = "squabble_latest_game"

_LATEST_GAME = re.compile(r"\b(latest|last|current|recent)\s+game\b")
_START_VERB = re.compile(r"\b(start|create|begin|new|launch)\b")
_GAME_WORD = re.compile(r"\bgames?\b")
_LEADERBOARD = re.compile(r"\b(leaderboard|leader board|standings|rankings?)\b")
_HELP = re.compile(r"\b(help|rules|how to play)\b")


class Interpreter(Protocol):
    async def interpret(self, text: str, session: ConversationSession) -> Intent:
        ...


def start_game_intent(buy_in: Optional[BuyInSpec]) -> Intent:
    """A start request becomes a game only once the buy-in is usable."""

    if buy_in is None or not is_buy_in_answer(buy_in):
        return NeedsBuyInClarification()
    return StartGame(buy_in)


def pending_answer(text: str, session: ConversationSession) -> Optional[Intent]:
    """Resolve a bare buy-in reply while the agent is waiting for one."""

    if not session.awaiting_buy_in or not text:
        return None
    spec = parse_buy_in(text)
    if is_buy_in_answer(spec):
        return StartGame(spec)
    return None


class RuleBasedInterpreter:
    """Keyword interpreter used by default and as the reference behavior."""

    def __init__(self, triggers: Iterable[str]) -> None:
        self._triggers = normalize_keywords(triggers)

    async def interpret(self, text: str, session: ConversationSession) -> Intent:
        return self.classify(text, session)

    def classify(self, text: str, session: ConversationSession) -> Intent:
        stripped = strip_triggers(text, self._triggers)

        pending = pending_answer(stripped, session)
        if pending is not None:
            return pending

        if _LATEST_GAME.search(stripped):
            return LatestGame()
        if _START_VERB.search(stripped) and _GAME_WORD.search(stripped):
            return start_game_intent(find_buy_in(stripped))
        if _LEADERBOARD.search(stripped):
            return Leaderboard()
        if not stripped or _HELP.search(stripped):
            return Help()
        return Unrecognized()


class OracleInterpreter:
    """Interpreter that delegates classification to a language model.

    The oracle only chooses *which* tool to run. Anything that decides an
    external call (a pending buy-in answer, the amount itself) is settled by
    the deterministic parser.
    """

    def __init__(self, oracle: OraclePort, triggers: Iterable[str]) -> None:
        self._oracle = oracle
        self._triggers = normalize_keywords(triggers)

    async def interpret(self, text: str, session: ConversationSession) -> Intent:
        stripped = strip_triggers(text, self._triggers)

        pending = pending_answer(stripped, session)
        if pending is not None:
            session.record_turn("user", text)
            return pending

        choice = await self._oracle.choose_tool(text, list(session.turns))
        session.record_turn("user", text)
        intent = self._to_intent(choice.tool, choice.arguments, choice.text)
        LOGGER.debug("Oracle picked %s -> %s", choice.tool, type(intent).__name__)
        return intent

    def _to_intent(self, tool: Optional[str], arguments: dict, text: str) -> Intent:
        if tool == TOOL_HELP:
            return Help()
        if tool == TOOL_LEADERBOARD:
            return Leaderboard()
        if tool == TOOL_LATEST_GAME:
            return LatestGame()
        if tool == TOOL_START_GAME:
            raw = arguments.get("betAmount")
            if raw is None or not str(raw).strip() or str(raw).strip().lower() == "null":
                return NeedsBuyInClarification()
            return start_game_intent(parse_buy_in(str(raw)))
        if tool:
            LOGGER.warning("Oracle picked unknown tool %s", tool)
        return Unrecognized(suggestion=text.strip() or None)

from __future__ import annotations

import asyncio
from decimal import Decimal

from core.config import DEFAULT_TRIGGERS
from core.interpreter import (
    TOOL_HELP,
    TOOL_LATEST_GAME,
    TOOL_LEADERBOARD,
    TOOL_START_GAME,
    OracleInterpreter,
    RuleBasedInterpreter,
)
from core.models import (
    Amount,
    Help,
    LatestGame,
    Leaderboard,
    NeedsBuyInClarification,
    NoBuyIn,
    StartGame,
    Unrecognized,
)
from core.ports import OracleChoice
from core.sessions import ConversationSession
from fakes import FakeOracle


def _session(awaiting: bool = False) -> ConversationSession:
    session = ConversationSession(user_id="1", conversation_id="100")
    session.awaiting_buy_in = awaiting
    return session


def _classify(text: str, awaiting: bool = False):
    return RuleBasedInterpreter(DEFAULT_TRIGGERS).classify(text, _session(awaiting))


def test_start_game_without_amount_asks_for_buy_in() -> None:
    assert _classify("@squabble start game") == NeedsBuyInClarification()
    assert _classify("@squabble create a new game please") == NeedsBuyInClarification()


def test_start_game_with_amount() -> None:
    assert _classify("@squabble start game for 2 USDC") == StartGame(Amount(Decimal("2")))
    assert _classify("@squabble start game, no buy-in") == StartGame(NoBuyIn())


def test_start_game_with_foreign_currency_asks_again() -> None:
    assert _classify("@squabble start game 5 ETH") == NeedsBuyInClarification()


def test_other_commands() -> None:
    assert _classify("@squabble leaderboard") == Leaderboard()
    assert _classify("@squabble show the standings") == Leaderboard()
    assert _classify("@squabble latest game") == LatestGame()
    assert _classify("@squabble what was the last game?") == LatestGame()
    assert _classify("@squabble help") == Help()
    assert _classify("@squabble how to play") == Help()


def test_bare_trigger_is_help() -> None:
    assert _classify("@squabble") == Help()
    assert _classify("@squabble.base.eth") == Help()


def test_unknown_request_is_unrecognized() -> None:
    assert _classify("@squabble what's the weather") == Unrecognized()


def test_pending_buy_in_answer() -> None:
    assert _classify("0.5", awaiting=True) == StartGame(Amount(Decimal("0.5")))
    assert _classify("No Buy-In", awaiting=True) == StartGame(NoBuyIn())
    assert _classify("@squabble 1 usdc", awaiting=True) == StartGame(Amount(Decimal("1")))


def test_bare_amount_without_pending_question() -> None:
    assert _classify("@squabble 0.5") == Unrecognized()


def test_oracle_start_game_amount_is_parsed_locally() -> None:
    oracle = FakeOracle(OracleChoice(tool=TOOL_START_GAME, arguments={"betAmount": "0.5 USDC"}))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)

    intent = asyncio.run(interpreter.interpret("@squabble start a game for half a usdc", _session()))

    assert intent == StartGame(Amount(Decimal("0.5")))
    assert len(oracle.calls) == 1


def test_oracle_start_game_without_amount() -> None:
    for arguments in ({}, {"betAmount": None}, {"betAmount": ""}, {"betAmount": "null"}):
        oracle = FakeOracle(OracleChoice(tool=TOOL_START_GAME, arguments=arguments))
        interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)

        intent = asyncio.run(interpreter.interpret("@squabble start game", _session()))

        assert intent == NeedsBuyInClarification(), arguments


def test_oracle_invalid_amount_asks_again() -> None:
    oracle = FakeOracle(OracleChoice(tool=TOOL_START_GAME, arguments={"betAmount": "5 ETH"}))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)

    intent = asyncio.run(interpreter.interpret("@squabble start game 5 eth", _session()))

    assert intent == NeedsBuyInClarification()


def test_oracle_tool_mapping() -> None:
    expected = {
        TOOL_HELP: Help(),
        TOOL_LEADERBOARD: Leaderboard(),
        TOOL_LATEST_GAME: LatestGame(),
    }
    for tool, intent in expected.items():
        interpreter = OracleInterpreter(FakeOracle(OracleChoice(tool=tool)), DEFAULT_TRIGGERS)
        assert asyncio.run(interpreter.interpret("@squabble x", _session())) == intent


def test_oracle_text_without_tool_is_suggested_reply() -> None:
    oracle = FakeOracle(OracleChoice(tool=None, text="I can only run Squabble games."))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)
    session = _session()

    intent = asyncio.run(interpreter.interpret("@squabble tell me a joke", session))

    assert intent == Unrecognized(suggestion="I can only run Squabble games.")
    assert [turn.role for turn in session.turns] == ["user"]


def test_oracle_unknown_tool_is_unrecognized() -> None:
    oracle = FakeOracle(OracleChoice(tool="squabble_delete_everything"))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)

    intent = asyncio.run(interpreter.interpret("@squabble do it", _session()))

    assert intent == Unrecognized()


def test_pending_answer_bypasses_oracle() -> None:
    oracle = FakeOracle(OracleChoice(tool=TOOL_HELP))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)

    intent = asyncio.run(interpreter.interpret("no buy-in", _session(awaiting=True)))

    assert intent == StartGame(NoBuyIn())
    assert oracle.calls == []


def test_oracle_receives_prior_turns() -> None:
    oracle = FakeOracle(OracleChoice(tool=TOOL_HELP))
    interpreter = OracleInterpreter(oracle, DEFAULT_TRIGGERS)
    session = _session()
    session.record_turn("user", "@squabble hi")
    session.record_turn("assistant", "hello")

    asyncio.run(interpreter.interpret("@squabble rules?", session))

    _, history = oracle.calls[0]
    assert [turn.content for turn in history] == ["@squabble hi", "hello"]

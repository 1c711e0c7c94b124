from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from adapters.openai_oracle import SYSTEM_PROMPT, TOOLS, OpenAIOracle
from core.errors import OracleError
from core.ports import OracleTurn


class FakeCompletions:
    def __init__(self, response=None, error: "Exception | None" = None) -> None:
        self.response = response
        self.error = error
        self.kwargs: dict = {}

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


class FakeOpenAI:
    def __init__(self, completions: FakeCompletions) -> None:
        self.chat = SimpleNamespace(completions=completions)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _response(content: "str | None" = None, tool: "str | None" = None, arguments: str = "{}"):
    tool_calls = None
    if tool:
        tool_calls = [SimpleNamespace(function=SimpleNamespace(name=tool, arguments=arguments))]
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _oracle(completions: FakeCompletions) -> OpenAIOracle:
    return OpenAIOracle(api_key="unused", client=FakeOpenAI(completions))


def test_tool_call_is_returned_with_arguments() -> None:
    completions = FakeCompletions(_response(tool="squabble_start_game", arguments='{"betAmount": "1"}'))

    choice = asyncio.run(_oracle(completions).choose_tool("@squabble start game 1", []))

    assert choice.tool == "squabble_start_game"
    assert choice.arguments == {"betAmount": "1"}
    assert completions.kwargs["tools"] == TOOLS
    assert completions.kwargs["temperature"] == 0


def test_history_is_sent_between_system_and_user() -> None:
    completions = FakeCompletions(_response(content="Hi!"))
    history = [OracleTurn("user", "@squabble hi"), OracleTurn("assistant", "hello")]

    choice = asyncio.run(_oracle(completions).choose_tool("@squabble rules", history))

    sent = completions.kwargs["messages"]
    assert sent[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert [m["content"] for m in sent[1:]] == ["@squabble hi", "hello", "@squabble rules"]
    assert choice.tool is None
    assert choice.text == "Hi!"


def test_malformed_arguments_are_dropped() -> None:
    completions = FakeCompletions(_response(tool="squabble_start_game", arguments="{not json"))

    choice = asyncio.run(_oracle(completions).choose_tool("x", []))

    assert choice.arguments == {}


def test_api_failure_raises_oracle_error() -> None:
    completions = FakeCompletions(error=OpenAIError("rate limited"))

    with pytest.raises(OracleError):
        asyncio.run(_oracle(completions).choose_tool("x", []))


def test_empty_choices_raise_oracle_error() -> None:
    completions = FakeCompletions(SimpleNamespace(choices=[]))

    with pytest.raises(OracleError):
        asyncio.run(_oracle(completions).choose_tool("x", []))


def test_close_closes_client() -> None:
    client = FakeOpenAI(FakeCompletions())
    oracle = OpenAIOracle(api_key="unused", client=client)

    asyncio.run(oracle.close())

    assert client.closed

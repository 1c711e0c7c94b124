"""OpenAI oracle adapter.

Implements the core OraclePort with chat-completions tool calling. The model
only picks a tool (and for game creation, passes the raw buy-in text); the
core turns that pick into an intent.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from core.errors import OracleError
from core.interpreter import TOOL_HELP, TOOL_LATEST_GAME, TOOL_LEADERBOARD, TOOL_START_GAME
from core.ports import OracleChoice, OracleTurn

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a helpful game assistant for Squabble. Keep responses concise and engaging.
Squabble is a fast-paced, social word game designed for private friend group chats.
In each match of 2 to 5 minutes, 2 to 6 players compete on the same randomized letter grid in real-time, racing against the clock to place or create as many words as possible on the grid.
The group chat has a leaderboard considering all the matches played on Squabble in that group chat.

IMPORTANT RULES:
1. For messages containing "start game", "create game", "begin game", call squabble_start_game. For "leaderboard", call squabble_leaderboard. For "help" or basic @squabble mentions, call squabble_help. For "latest game" call squabble_latest_game.
2. When users reply with numbers, amounts, or phrases like 'no buy-in' after being asked for a buy-in amount, call squabble_start_game with the betAmount parameter.
3. Use the word 'buy-in' when talking about the amount, never 'bet' or 'stake'.
4. The amount must be given in $ or USDC or as a plain number, which is read as USDC. No other tokens.
5. If no buy-in amount was given with a start request, call squabble_start_game without betAmount.
6. Only answer in plain text when no tool fits.
""".strip()

_NO_ARGS = {"type": "object", "properties": {}, "additionalProperties": False}

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": TOOL_HELP,
            "description": "Get help and rules for the Squabble game",
            "parameters": _NO_ARGS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_START_GAME,
            "description": (
                "Start a new Squabble game in this group chat. Call this when the user asks to "
                "start a game, or replies with a buy-in amount after being asked for one."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "betAmount": {
                        "type": ["string", "null"],
                        "description": (
                            "Buy-in exactly as the user wrote it, like '1', '0.01', '10 USDC', "
                            "'5$' or 'no buy-in'. Null when the user gave none."
                        ),
                    }
                },
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_LEADERBOARD,
            "description": "Show the current Squabble leaderboard for this group chat",
            "parameters": _NO_ARGS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_LATEST_GAME,
            "description": "Get the latest Squabble game on this group chat",
            "parameters": _NO_ARGS,
        },
    },
]


def _parse_arguments(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Oracle returned malformed tool arguments: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIOracle:
    """Tool-selection oracle backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 15.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self.model = model

    async def choose_tool(self, text: str, history: Sequence[OracleTurn]) -> OracleChoice:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": text})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=TOOLS,
                tool_choice="auto",
                temperature=0,
            )
        except OpenAIError as exc:
            raise OracleError(f"Oracle call failed: {exc}") from exc

        if not response.choices:
            raise OracleError("Oracle returned no choices")
        message = response.choices[0].message
        content = (message.content or "").strip()
        tool_calls = message.tool_calls or []
        if not tool_calls:
            return OracleChoice(text=content)

        call = tool_calls[0]
        return OracleChoice(
            tool=call.function.name,
            arguments=_parse_arguments(call.function.arguments),
            text=content,
        )

    async def close(self) -> None:
        await self.client.close()

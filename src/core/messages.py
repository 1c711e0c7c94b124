"""User-facing texts and reply formatting.

Keeping every chat string here prevents drift between the executor, the
dispatch loop and the admin API.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from core.buy_in import format_decimal
from core.models import LeaderboardEntry, LeaderboardReport

HELP_MESSAGE = (
    "🧩 Squabble is a fast-paced word game for group chats.\n"
    "\n"
    "→ 2–6 players share one randomized letter grid\n"
    "→ Everyone plays at the same time, 2 to 5 minutes per match\n"
    "→ Place or create as many words as you can before the clock runs out\n"
    "→ Optional buy-ins in USDC, winner takes all 🤑\n"
    "\n"
    "Commands:\n"
    "@squabble start game - create a new match (I'll ask for the buy-in)\n"
    "@squabble leaderboard - standings for this chat\n"
    "@squabble latest game - link to the most recent match\n"
    "\n"
    "How much should the buy-in be for a new game? Reply with an amount like 1 or 0.5 USDC, or say no buy-in."
)

HELP_HINT_MESSAGE = (
    "👋 Hi! I'm the Squabble game agent. You asked for help! "
    "Try to invoke the agent with @squabble.base.eth or just @squabble"
)

BUY_IN_PROMPT = (
    "How much should the buy-in be for this game? "
    "Reply with an amount in USDC (like 1, 0.5 USDC or 2$) or say no buy-in to play for fun."
)

GAME_CREATED_MESSAGE = "🎮 Game created! Good luck! 🍀"
LATEST_GAME_MESSAGE = "🎮 Latest Game:"

CREATE_GAME_FAILED = "❌ Failed to create game. Please try again."
LEADERBOARD_FAILED = "❌ Failed to fetch leaderboard. Please try again."
LATEST_GAME_FAILED = "❌ Failed to fetch latest game. Please try again."

GENERAL_ERROR = "I encountered an error while processing your request. Please try again later."

UNRECOGNIZED_FALLBACK = (
    "I'm not sure what you mean. Try @squabble start game, @squabble leaderboard "
    "or @squabble latest game, or @squabble help for the rules."
)

WELCOME_MESSAGE = (
    "👋 Hey, I'm Squabble - your chaotic little word game bot.\n"
    "\n"
    "Ready for 2-minute scrabble battles? Here's how it works:\n"
    "→ 2–6 players\n"
    "→ One shared grid\n"
    "→ Everyone plays at the same time\n"
    "→ Optional buy-ins\n"
    "→ Winner takes all 🤑\n"
    "\n"
    "This group now has its own leaderboard. Bragging rights are officially on the line.\n"
    "\n"
    "Tag @squabble anytime to start a match.\n"
    "\n"
    "Let the squabbling begin 🧩🔥"
)

DM_INTRO_MESSAGE = (
    "👋 Hey! I'm the Squabble agent, your game host for fast, chaotic word battles.\n"
    "\n"
    "I'm built for group chats: add me to a group and mention @squabble to start a round.\n"
    "Optional: bring USDC buy-ins if you're feeling spicy 💸🔥"
)


def minimum_not_met_message(amount: Decimal, minimum: Decimal) -> str:
    return (
        f"The minimum buy-in is {format_decimal(minimum)} USDC, "
        f"so {format_decimal(amount)} USDC is too low. "
        "Start a new game with a higher amount or with no buy-in."
    )


def sort_leaderboard(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Points descending, then wins descending; further ties keep server order."""

    return sorted(entries, key=lambda entry: (-entry.points, -entry.wins))


def _player_name(entry: LeaderboardEntry) -> str:
    return entry.username or entry.display_name or entry.address


def format_leaderboard(report: LeaderboardReport) -> str:
    """Render the leaderboard as a ranked, newline-delimited list."""

    entries = sort_leaderboard(report.entries)
    if not entries:
        return "🏆 Squabble Leaderboard 🏆\n\nNo finished games in this chat yet. Start one with @squabble start game!"

    lines = ["🏆 Squabble Leaderboard 🏆", ""]
    for rank, entry in enumerate(entries, start=1):
        lines.append(
            f"{rank}. {_player_name(entry)} - {entry.points} pts "
            f"({entry.wins}W/{entry.total_games}G) - "
            f"{format_decimal(entry.total_winnings)} USDC won"
        )
    lines.extend(
        [
            "",
            f"Finished games: {report.total_finished_games}",
            "🎮 Battle for the top spot! Who will claim victory next?",
        ]
    )
    return "\n".join(lines)

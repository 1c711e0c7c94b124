"""Intent execution (core domain).

The executor performs the side effect behind an intent and reports, via
``ExecutionResult``, whether the dispatch loop still has something to send.
``DirectlySent`` means the executor already talked to the conversation;
``ReplyText`` asks the loop to send exactly one message.

Game-server calls are attempted once. Failures are logged with full detail
and turned into a fixed apology; the chat never sees error internals.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from core import messages
from core.buy_in import format_bet_amount
from core.config import UNRECOGNIZED_SILENT, ExecutorConfig
from core.errors import GameServerError
from core.models import (
    Amount,
    ConversationContext,
    DirectlySent,
    ExecutionResult,
    Help,
    Intent,
    LatestGame,
    Leaderboard,
    NeedsBuyInClarification,
    NoBuyIn,
    ReplyText,
    StartGame,
    Unrecognized,
)
from core.ports import GameServerPort, TransportPort

LOGGER = logging.getLogger(__name__)


class ActionExecutor:
    """Runs one intent against the game server and the conversation."""

    def __init__(
        self,
        game_server: GameServerPort,
        transport: TransportPort,
        config: ExecutorConfig,
    ) -> None:
        self._game_server = game_server
        self._transport = transport
        self._config = config

    def game_url(self, game_id: str) -> str:
        return f"{self._config.game_url_base.rstrip('/')}/games/{game_id}"

    async def _send(self, context: ConversationContext, text: str) -> None:
        await self._transport.send(context.conversation_id, text, context.thread_id)

    async def execute(self, intent: Intent, context: ConversationContext) -> ExecutionResult:
        if isinstance(intent, Help):
            await self._send(context, messages.HELP_MESSAGE)
            return DirectlySent("help sent")
        if isinstance(intent, StartGame):
            return await self._start_game(intent, context)
        if isinstance(intent, Leaderboard):
            return await self._leaderboard(context)
        if isinstance(intent, LatestGame):
            return await self._latest_game(context)
        if isinstance(intent, NeedsBuyInClarification):
            return ReplyText(messages.BUY_IN_PROMPT)
        if isinstance(intent, Unrecognized):
            return self._unrecognized(intent)
        raise TypeError(f"Unsupported intent: {intent!r}")

    async def _start_game(self, intent: StartGame, context: ConversationContext) -> ExecutionResult:
        buy_in = intent.buy_in
        if isinstance(buy_in, Amount):
            amount = buy_in.value
        elif isinstance(buy_in, NoBuyIn):
            amount = Decimal("0")
        else:
            # Unparsed amounts never reach the game server.
            return ReplyText(messages.BUY_IN_PROMPT)

        minimum = self._config.minimum_buy_in
        if isinstance(buy_in, Amount) and amount < minimum:
            LOGGER.info(
                "Rejected buy-in %s below minimum %s in %s", amount, minimum, context.conversation_id
            )
            await self._send(context, messages.minimum_not_met_message(amount, minimum))
            return DirectlySent("buy-in below minimum")

        try:
            game = await self._game_server.create_game(amount, context.conversation_id)
        except GameServerError:
            LOGGER.exception(
                "create-game failed for %s (betAmount=%s)",
                context.conversation_id,
                format_bet_amount(buy_in),
            )
            await self._send(context, messages.CREATE_GAME_FAILED)
            return DirectlySent("create-game failed")

        LOGGER.info("Game %s created in %s", game.game_id, context.conversation_id)
        await self._send(context, messages.GAME_CREATED_MESSAGE)
        await self._send(context, self.game_url(game.game_id))
        return DirectlySent(f"game {game.game_id} created")

    async def _leaderboard(self, context: ConversationContext) -> ExecutionResult:
        try:
            report = await self._game_server.get_leaderboard(context.conversation_id)
        except GameServerError:
            LOGGER.exception("leaderboard failed for %s", context.conversation_id)
            await self._send(context, messages.LEADERBOARD_FAILED)
            return DirectlySent("leaderboard failed")
        return ReplyText(messages.format_leaderboard(report))

    async def _latest_game(self, context: ConversationContext) -> ExecutionResult:
        try:
            game = await self._game_server.get_latest_game()
        except GameServerError:
            LOGGER.exception("get-game failed for %s", context.conversation_id)
            await self._send(context, messages.LATEST_GAME_FAILED)
            return DirectlySent("latest game failed")

        await self._send(context, messages.LATEST_GAME_MESSAGE)
        await self._send(context, self.game_url(game.game_id))
        return DirectlySent(f"latest game {game.game_id} sent")

    def _unrecognized(self, intent: Unrecognized) -> ExecutionResult:
        if self._config.unrecognized_policy == UNRECOGNIZED_SILENT:
            return DirectlySent("unrecognized, staying silent")
        return ReplyText(intent.suggestion or messages.UNRECOGNIZED_FALLBACK)

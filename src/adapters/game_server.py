"""Squabble game server adapter.

Implements the core GameServerPort over HTTP with aiohttp. Every request
carries the shared ``x-agent-secret`` header and is attempted once within a
bounded timeout; any failure surfaces as ``GameServerError``.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import aiohttp

from core.buy_in import format_decimal
from core.errors import GameServerError
from core.models import GameRecord, LeaderboardEntry, LeaderboardReport

LOGGER = logging.getLogger(__name__)

SECRET_HEADER = "x-agent-secret"


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def parse_game(payload: Any) -> GameRecord:
    if not isinstance(payload, dict) or not payload.get("id"):
        raise GameServerError(f"Game payload without id: {payload!r}")
    return GameRecord(game_id=str(payload["id"]), raw=payload)


def parse_leaderboard(payload: Any) -> LeaderboardReport:
    if not isinstance(payload, dict) or not isinstance(payload.get("leaderboard"), list):
        raise GameServerError(f"Unexpected leaderboard payload: {payload!r}")

    entries = [
        LeaderboardEntry(
            address=str(row.get("address") or ""),
            display_name=str(row.get("displayName") or ""),
            username=str(row.get("username") or ""),
            points=_to_int(row.get("points")),
            wins=_to_int(row.get("wins")),
            total_games=_to_int(row.get("totalGames")),
            total_winnings=_to_decimal(row.get("totalWinnings")),
        )
        for row in payload["leaderboard"]
        if isinstance(row, dict)
    ]
    return LeaderboardReport(
        entries=entries,
        total_finished_games=_to_int(payload.get("totalFinishedGames")),
    )


class GameServerClient:
    """aiohttp client for the /api/agent endpoints."""

    def __init__(
        self,
        base_url: str,
        agent_secret: str,
        timeout_seconds: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._secret = agent_secret.strip()
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", SECRET_HEADER: self._secret}

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with self._get_session().request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=json_body,
                timeout=self._timeout,
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    body = await resp.text()
                    raise GameServerError(
                        f"{method} {path} returned {resp.status}: {body[:200]}",
                        status=resp.status,
                    )
                return await resp.json(content_type=None)
        except GameServerError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise GameServerError(f"{method} {path} failed: {exc!r}") from exc

    async def create_game(self, bet_amount: Decimal, conversation_id: str) -> GameRecord:
        payload = await self._request(
            "POST",
            "/api/agent/create-game",
            json_body={
                "betAmount": format_decimal(bet_amount),
                "conversationId": conversation_id,
            },
        )
        return parse_game(payload)

    async def get_leaderboard(self, conversation_id: str) -> LeaderboardReport:
        payload = await self._request(
            "GET",
            "/api/agent/leaderboard",
            params={"conversationId": conversation_id},
        )
        return parse_leaderboard(payload)

    async def get_latest_game(self) -> GameRecord:
        payload = await self._request("GET", "/api/agent/get-game")
        return parse_game(payload)

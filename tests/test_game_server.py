from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from adapters.game_server import SECRET_HEADER, GameServerClient, parse_game, parse_leaderboard
from core.errors import GameServerError

SECRET = "s3cret"


class RecordingGameServer:
    """In-process stand-in for the Squabble web app."""

    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.requests: list[dict[str, Any]] = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/agent/create-game", self._create_game)
        app.router.add_get("/api/agent/leaderboard", self._leaderboard)
        app.router.add_get("/api/agent/get-game", self._get_game)
        return app

    async def _record(self, request: web.Request) -> None:
        body = await request.json() if request.can_read_body else None
        self.requests.append(
            {
                "path": request.path,
                "secret": request.headers.get(SECRET_HEADER),
                "query": dict(request.query),
                "body": body,
            }
        )

    async def _create_game(self, request: web.Request) -> web.Response:
        await self._record(request)
        if self.status != 200:
            return web.json_response({"error": "database down"}, status=self.status)
        return web.json_response({"id": "abc123", "status": "waiting"})

    async def _leaderboard(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(
            {
                "leaderboard": [
                    {
                        "address": "0x1",
                        "displayName": "Alice",
                        "username": "alice",
                        "points": 20,
                        "wins": 3,
                        "totalGames": 5,
                        "totalWinnings": "2.5",
                    }
                ],
                "totalFinishedGames": 5,
            }
        )

    async def _get_game(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"id": 77})


def _run_against(server: RecordingGameServer, call):
    async def run():
        test_server = TestServer(server.app())
        await test_server.start_server()
        client = GameServerClient(str(test_server.make_url("/")), SECRET, timeout_seconds=5)
        try:
            return await call(client)
        finally:
            await client.close()
            await test_server.close()

    return asyncio.run(run())


def test_create_game_posts_amount_and_secret() -> None:
    server = RecordingGameServer()

    game = _run_against(server, lambda client: client.create_game(Decimal("0.50"), "conv-1"))

    assert game.game_id == "abc123"
    assert server.requests == [
        {
            "path": "/api/agent/create-game",
            "secret": SECRET,
            "query": {},
            "body": {"betAmount": "0.5", "conversationId": "conv-1"},
        }
    ]


def test_free_game_sends_zero() -> None:
    server = RecordingGameServer()

    _run_against(server, lambda client: client.create_game(Decimal("0"), "conv-1"))

    assert server.requests[0]["body"]["betAmount"] == "0"


def test_server_error_raises_game_server_error() -> None:
    server = RecordingGameServer(status=500)

    with pytest.raises(GameServerError) as excinfo:
        _run_against(server, lambda client: client.create_game(Decimal("1"), "conv-1"))

    assert excinfo.value.status == 500
    assert len(server.requests) == 1


def test_leaderboard_is_scoped_to_conversation() -> None:
    server = RecordingGameServer()

    report = _run_against(server, lambda client: client.get_leaderboard("conv-9"))

    assert server.requests[0]["query"] == {"conversationId": "conv-9"}
    assert server.requests[0]["secret"] == SECRET
    assert report.total_finished_games == 5
    assert report.entries[0].username == "alice"
    assert report.entries[0].total_winnings == Decimal("2.5")


def test_latest_game_id_is_stringified() -> None:
    server = RecordingGameServer()

    game = _run_against(server, lambda client: client.get_latest_game())

    assert game.game_id == "77"


def test_unreachable_server_raises_game_server_error() -> None:
    async def run() -> None:
        client = GameServerClient("http://127.0.0.1:1", SECRET, timeout_seconds=2)
        try:
            await client.get_latest_game()
        finally:
            await client.close()

    with pytest.raises(GameServerError):
        asyncio.run(run())


def test_parse_game_requires_id() -> None:
    with pytest.raises(GameServerError):
        parse_game({"status": "waiting"})
    with pytest.raises(GameServerError):
        parse_game(["not", "a", "dict"])


def test_parse_leaderboard_tolerates_missing_fields() -> None:
    report = parse_leaderboard({"leaderboard": [{"address": "0x2"}, "junk"]})

    assert len(report.entries) == 1
    entry = report.entries[0]
    assert entry.address == "0x2"
    assert entry.points == 0
    assert entry.total_winnings == Decimal("0")
    assert report.total_finished_games == 0


def test_parse_leaderboard_rejects_other_shapes() -> None:
    with pytest.raises(GameServerError):
        parse_leaderboard({"error": "nope"})

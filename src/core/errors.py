"""Error types raised by adapters and handled by the core."""

from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """Base class for expected agent failures."""


class GameServerError(AgentError):
    """The game server could not be reached or answered with a failure."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class OracleError(AgentError):
    """The language-model oracle call failed."""

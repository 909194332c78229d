"""
Abstract interface for sports data feed clients.

The scheduler and monitors depend only on this abstract class; ESPNClient is
the concrete provider today.
"""

from __future__ import annotations
from abc import ABC, abstractmethod

from models.game import Game, GameUpdate, TrackingRequest


class GameFeedClient(ABC):
    """
    Base class for all sports data providers.

    Both fetch methods raise TransientFetchError when the provider is
    unavailable or returns something unusable.
    """

    @abstractmethod
    async def startup(self) -> None:
        """
        Initialize connections, pre-warm sessions.
        Called once before the scheduler runs.
        """
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Clean up connections."""
        ...

    @abstractmethod
    async def fetch_games(self, request: TrackingRequest, group: str | None = None) -> list[Game]:
        """
        Games on the scoreboard for request.sport/request.league, restricted to
        one conference when group is given. No team filtering happens here.
        """
        ...

    @abstractmethod
    async def fetch_game_score(self, game: Game) -> GameUpdate:
        """Current scores, period, clock and status for one game."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name for logging."""
        ...

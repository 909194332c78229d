"""
ESPN public scoreboard API adapter. Free, no API key required.

Endpoint:
  {base}/{sport}/{league}/scoreboard[?groups={conference}]
  e.g. site.api.espn.com/apis/site/v2/sports/football/college-football/scoreboard?groups=5

Without groups, college scoreboards only list the top-25 games, which is why
the scheduler asks per conference.
"""

from __future__ import annotations
import asyncio
import logging
import time
from typing import Any

import aiohttp

from models.errors import TransientFetchError
from models.game import Game, GameUpdate, TrackingRequest
from sports.base import GameFeedClient
from sports.normalizer import espn_competition_to_update, espn_event_to_game, find_competition

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"


class ESPNClient(GameFeedClient):
    """Fetches games and live scores from ESPN's scoreboard endpoint."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout_s: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return "espn"

    async def startup(self) -> None:
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._timeout_s, connect=5),
            connector=aiohttp.TCPConnector(limit=10, keepalive_timeout=30),
            headers={"User-Agent": "Mozilla/5.0"},
        )
        log.info("%s feed client initialized", self.name)

    async def shutdown(self) -> None:
        if self._session:
            await self._session.close()

    def scoreboard_url(self, sport: str, league: str) -> str:
        return f"{self._base_url}/{sport}/{league}/scoreboard"

    async def fetch_games(self, request: TrackingRequest, group: str | None = None) -> list[Game]:
        params = {"groups": group} if group else None
        data = await self._get(self.scoreboard_url(request.sport, request.league), params)

        games: list[Game] = []
        for raw in data.get("events", []):
            try:
                game = espn_event_to_game(raw, request.sport, request.league)
            except (ValueError, KeyError, IndexError, TypeError) as exc:
                log.warning("%s skipping malformed event %s: %s", self.name, raw.get("id"), exc)
                continue
            if game is not None:
                games.append(game)

        log.info("%s fetched %d game(s) for %s/%s group=%s",
                 self.name, len(games), request.sport, request.league, group or "-")
        return games

    async def fetch_game_score(self, game: Game) -> GameUpdate:
        fetched_at = time.monotonic_ns()
        data = await self._get(self.scoreboard_url(game.sport, game.league), None)
        comp = find_competition(data, game.id)
        if comp is None:
            raise TransientFetchError(f"game {game.id} not found on {game.sport}/{game.league} scoreboard")
        try:
            update = espn_competition_to_update(comp)
        except (ValueError, KeyError, TypeError) as exc:
            raise TransientFetchError(f"malformed competition for game {game.id}: {exc}") from exc
        log.debug(
            "%s score game=%s scores=%s period=%d latency_ms=%.1f",
            self.name, game.id, dict(update.scores), update.current_period,
            (time.monotonic_ns() - fetched_at) / 1_000_000,
        )
        return update

    async def _get(self, url: str, params: dict[str, str] | None) -> dict[str, Any]:
        assert self._session, "Call startup() first"
        try:
            async with self._session.get(url, params=params) as resp:
                resp.raise_for_status()
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise TransientFetchError(f"{url}: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise TransientFetchError(f"{url}: timed out") from exc
        except ValueError as exc:
            raise TransientFetchError(f"{url}: invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise TransientFetchError(f"{url}: unexpected payload type {type(data).__name__}")
        return data

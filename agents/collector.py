"""
Collection Scheduler: turns a TrackingRequest into running monitors.

  1. fetch once per requested conference (concurrently), plus once unfiltered
     with client-side team filtering if teams were requested
  2. merge, dropping games already seen under another conference
  3. spawn a monitor for every scheduled game that has not started yet

Fails loud: a fetch or spawn failure aborts the run with SchedulingError.
Missing the window before kickoff can't be fixed by retrying later, so the
caller needs to know.
"""

from __future__ import annotations
import asyncio
import logging

from agents.registry import MonitorHandle, MonitorRegistry, monitor_identity
from models.errors import ConfigurationError, SchedulingError
from models.game import Game, GameStatus, TrackingRequest
from sports.base import GameFeedClient
from utils.clock import Clock

log = logging.getLogger(__name__)


class CollectionScheduler:
    def __init__(
        self,
        feed: GameFeedClient,
        registry: MonitorRegistry,
        clock: Clock | None = None,
    ) -> None:
        self._feed = feed
        self._registry = registry
        self._clock = clock or Clock()

    async def collect(self, request: TrackingRequest) -> int:
        """Schedule monitors for request. Returns the number of games discovered."""
        _validate(request)
        log.info(
            "Collecting games sport=%s league=%s conferences=%s teams=%s",
            request.sport, request.league, sorted(request.conferences), sorted(request.teams),
        )

        games = await self.discover(request)
        spawned = self.schedule(games)
        log.info("Collected %d game(s), %d monitor(s) scheduled", len(games), len(spawned))
        return len(games)

    async def discover(self, request: TrackingRequest) -> list[Game]:
        fetches = [self._feed.fetch_games(request, group=conf) for conf in sorted(request.conferences)]
        if request.teams:
            fetches.append(self._fetch_for_teams(request))
        if not fetches:
            log.info("Request has no conferences or teams; nothing to collect")
            return []

        # The first failed fetch cancels the rest before the group exits
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(fetch) for fetch in fetches]
        except ExceptionGroup as eg:
            exc = eg.exceptions[0]
            raise SchedulingError(f"Failed to fetch games for {request.sport}/{request.league}: {exc}") from exc

        merged: dict[str, Game] = {}
        for task in tasks:
            for game in task.result():
                merged.setdefault(game.id, game)
        return list(merged.values())

    def schedule(self, games: list[Game]) -> list[MonitorHandle]:
        now = self._clock.now()
        handles: list[MonitorHandle] = []
        for game in games:
            if game.status is not GameStatus.SCHEDULED or game.start_time <= now:
                log.debug("Not scheduling game=%s status=%s start=%s",
                          game.id, game.status.value, game.start_time.isoformat())
                continue
            identity = monitor_identity(game)
            try:
                handles.append(self._registry.spawn(identity, game))
            except Exception as exc:
                raise SchedulingError(f"Failed to start monitor {identity}: {exc}") from exc
        return handles

    async def _fetch_for_teams(self, request: TrackingRequest) -> list[Game]:
        games = await self._feed.fetch_games(request)
        return [g for g in games if g.home.id in request.teams or g.away.id in request.teams]


def _validate(request: TrackingRequest) -> None:
    if not request.sport or not request.league:
        raise ConfigurationError("TrackingRequest needs both sport and league")

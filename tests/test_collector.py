"""Tests for agents.collector.CollectionScheduler."""

import asyncio
from datetime import timedelta

import pytest

from agents.collector import CollectionScheduler
from agents.registry import MonitorRegistry
from conftest import FakeFeed, RecordingChannel, ScriptedScores, make_game, monitor_config
from models.errors import ConfigurationError, SchedulingError
from models.game import GameStatus, TrackingRequest
from notify.dispatcher import Dispatcher
from utils.clock import Clock


@pytest.fixture
async def registry():
    registry = MonitorRegistry(
        fetch_score=ScriptedScores([]),
        dispatcher=Dispatcher({"logger": RecordingChannel()}),
        config=monitor_config(),
    )
    yield registry
    registry.cancel_all()
    await registry.join()


def _games():
    now = Clock().now()
    return {
        "upcoming": make_game(game_id="1", start_time=now + timedelta(hours=2)),
        "later": make_game(game_id="2", start_time=now + timedelta(hours=6), home_id="61", away_id="99"),
        "finished": make_game(game_id="3", start_time=now - timedelta(hours=1), status=GameStatus.FINAL),
    }


class TestCollect:
    async def test_only_future_scheduled_games_get_monitors(self, registry):
        games = _games()
        feed = FakeFeed({"5": list(games.values())})
        scheduler = CollectionScheduler(feed, registry)

        count = await scheduler.collect(TrackingRequest(sport="football", league="college-football",
                                                        conferences=["5"]))

        assert count == 3
        assert {h.identity for h in registry.active()} == {"game-1", "game-2"}
        assert feed.requests[0][1] == "5"

    async def test_started_game_is_skipped_even_if_status_is_scheduled(self, registry):
        past = make_game(game_id="9", start_time=Clock().now() - timedelta(minutes=1))
        scheduler = CollectionScheduler(FakeFeed({"5": [past]}), registry)

        await scheduler.collect(TrackingRequest(sport="football", league="college-football", conferences=["5"]))

        assert registry.active() == []

    async def test_game_in_two_conferences_spawns_once(self, registry):
        game = _games()["upcoming"]
        feed = FakeFeed({"5": [game], "8": [game]})
        scheduler = CollectionScheduler(feed, registry)

        count = await scheduler.collect(TrackingRequest(sport="football", league="college-football",
                                                        conferences=["5", "8"]))

        assert count == 1
        assert len(registry.active()) == 1
        assert sorted(group for _, group in feed.requests) == ["5", "8"]

    async def test_collect_twice_is_idempotent(self, registry):
        feed = FakeFeed({"5": list(_games().values())})
        scheduler = CollectionScheduler(feed, registry)
        request = TrackingRequest(sport="football", league="college-football", conferences=["5"])

        await scheduler.collect(request)
        handles = {h.identity: h for h in registry.active()}
        await scheduler.collect(request)

        assert {h.identity: h for h in registry.active()} == handles

    async def test_teams_filter_unfiltered_scoreboard(self, registry):
        games = _games()
        feed = FakeFeed({None: [games["upcoming"], games["later"]]})
        scheduler = CollectionScheduler(feed, registry)

        count = await scheduler.collect(TrackingRequest(sport="basketball", league="nba", teams=["61"]))

        assert count == 1
        assert [h.identity for h in registry.active()] == ["game-2"]
        assert feed.requests[0][1] is None

    async def test_empty_request_collects_nothing(self, registry):
        feed = FakeFeed({None: list(_games().values())})
        scheduler = CollectionScheduler(feed, registry)

        assert await scheduler.collect(TrackingRequest(sport="football", league="nfl")) == 0
        assert feed.requests == []


class TestFailures:
    async def test_fetch_failure_is_scheduling_error(self, registry):
        feed = FakeFeed(error=RuntimeError("ESPN is down"))
        scheduler = CollectionScheduler(feed, registry)

        with pytest.raises(SchedulingError, match="ESPN is down"):
            await scheduler.collect(TrackingRequest(sport="football", league="nfl", conferences=["5"]))
        assert registry.active() == []

    async def test_failed_conference_fetch_cancels_the_others(self, registry):
        finished, cancelled = [], []

        class SlowFeed(FakeFeed):
            async def fetch_games(self, request, group=None):
                if group == "5":
                    await asyncio.sleep(0)    # let "8" get in flight first
                    raise RuntimeError("conference 5 unavailable")
                try:
                    await asyncio.sleep(0.05)
                except asyncio.CancelledError:
                    cancelled.append(group)
                    raise
                finished.append(group)
                return []

        scheduler = CollectionScheduler(SlowFeed(), registry)

        with pytest.raises(SchedulingError, match="conference 5 unavailable"):
            await scheduler.collect(TrackingRequest(sport="football", league="college-football",
                                                    conferences=["5", "8"]))
        await asyncio.sleep(0.1)

        assert cancelled == ["8"]
        assert finished == []

    async def test_spawn_failure_is_scheduling_error(self):
        class BrokenRegistry:
            def spawn(self, identity, game):
                raise RuntimeError("no capacity")

        scheduler = CollectionScheduler(FakeFeed({"5": [_games()["upcoming"]]}), BrokenRegistry())

        with pytest.raises(SchedulingError, match="game-1"):
            await scheduler.collect(TrackingRequest(sport="football", league="nfl", conferences=["5"]))

    async def test_missing_league_is_configuration_error(self, registry):
        scheduler = CollectionScheduler(FakeFeed(), registry)
        with pytest.raises(ConfigurationError):
            await scheduler.collect(TrackingRequest(sport="football", league="", conferences=["5"]))

"""Shared fakes: a virtual clock, game factories, scripted feeds and recording channels."""

from __future__ import annotations
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest

from config.settings import MonitorConfig
from models.errors import DispatchError
from models.game import Game, GameStatus, GameUpdate, Notification, NotificationCategory, Team, TrackingRequest
from notify.channels import NotificationChannel
from sports.base import GameFeedClient
from utils.clock import Clock

T0 = datetime(2024, 11, 30, 17, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Sleeping advances virtual time instantly."""

    def __init__(self, now: datetime = T0) -> None:
        self._now = now
        self.sleeps: list[timedelta] = []

    def now(self) -> datetime:
        return self._now

    async def sleep(self, delay: timedelta) -> None:
        self.sleeps.append(delay)
        if delay > timedelta(0):
            self._now += delay
        await asyncio.sleep(0)


def make_team(team_id: str, name: str, abbr: str, conference: str = "5",
              favorite: bool = False, underdog: bool = False) -> Team:
    return Team(id=team_id, display_name=name, abbreviation=abbr, conference_id=conference,
                is_favorite=favorite, is_underdog=underdog)


def make_game(
    game_id: str = "401520281",
    start_time: datetime = T0,
    status: GameStatus = GameStatus.SCHEDULED,
    home_underdog: bool = False,
    away_underdog: bool = False,
    sport: str = "football",
    league: str = "college-football",
    regulation_periods: int = 4,
    home_id: str = "130",
    away_id: str = "194",
) -> Game:
    home = make_team(home_id, "Michigan Wolverines", "MICH",
                     favorite=away_underdog, underdog=home_underdog)
    away = make_team(away_id, "Ohio State Buckeyes", "OSU",
                     favorite=home_underdog, underdog=away_underdog)
    return Game(
        id=game_id,
        sport=sport,
        league=league,
        home=home,
        away=away,
        start_time=start_time,
        status=status,
        scores={home.id: "0", away.id: "0"},
        regulation_periods=regulation_periods,
        network="ABC",
    )


def update(game: Game, home: int | str, away: int | str, period: int = 1,
           clock: str = "10:00", status: GameStatus = GameStatus.IN_PROGRESS) -> GameUpdate:
    return GameUpdate(
        scores={game.home.id: str(home), game.away.id: str(away)},
        current_period=period,
        display_clock=clock,
        status=status,
    )


class ScriptedScores:
    """
    fetch_score stand-in. Each call returns the next scripted item (raising it
    if it is an exception); once exhausted, the last update repeats.
    """

    def __init__(self, script: Sequence[GameUpdate | Exception]) -> None:
        self._script = list(script)
        self._last: GameUpdate | None = None
        self.calls: list[Game] = []
        self.call_times: list[datetime] = []
        self.clock: Clock | None = None

    async def __call__(self, game: Game) -> GameUpdate:
        self.calls.append(game)
        if self.clock is not None:
            self.call_times.append(self.clock.now())
        if self._script:
            item = self._script.pop(0)
            if isinstance(item, Exception):
                raise item
            self._last = item
            return item
        if self._last is None:
            raise AssertionError("ScriptedScores has nothing to return")
        return self._last


class RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "logger") -> None:
        self._name = name
        self.batches: list[list[Notification]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def sent(self) -> list[Notification]:
        return [n for batch in self.batches for n in batch]

    async def send(self, notifications: Sequence[Notification]) -> None:
        self.batches.append(list(notifications))


class FailingChannel(RecordingChannel):
    async def send(self, notifications: Sequence[Notification]) -> None:
        self.batches.append(list(notifications))
        raise DispatchError(self.name, "HTTP 500: upstream exploded")


class FakeFeed(GameFeedClient):
    """fetch_games answers from a dict keyed by group (None = unfiltered scoreboard)."""

    def __init__(self, games_by_group: dict[str | None, list[Game]] | None = None,
                 error: Exception | None = None) -> None:
        self._games_by_group = games_by_group or {}
        self._error = error
        self.requests: list[tuple[TrackingRequest, str | None]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def startup(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def fetch_games(self, request: TrackingRequest, group: str | None = None) -> list[Game]:
        self.requests.append((request, group))
        if self._error is not None:
            raise self._error
        return list(self._games_by_group.get(group, []))

    async def fetch_game_score(self, game: Game) -> GameUpdate:
        return GameUpdate(scores=dict(game.scores), current_period=game.current_period,
                          display_clock=game.display_clock, status=game.status)


def espn_event(**overrides):
    comp = {
        "id": "401520281",
        "date": "2024-11-30T17:00Z",
        "competitors": [
            {
                "homeAway": "away",
                "score": "7",
                "team": {"id": "194", "displayName": "Ohio State Buckeyes",
                         "abbreviation": "OSU", "conferenceId": "5"},
            },
            {
                "homeAway": "home",
                "score": "14",
                "team": {"id": "130", "displayName": "Michigan Wolverines",
                         "abbreviation": "MICH", "conferenceId": "5"},
            },
        ],
        "odds": [{
            "details": "OSU -19.5",
            "homeTeamOdds": {"favorite": False, "underdog": True},
            "awayTeamOdds": {"favorite": True, "underdog": False},
        }],
        "broadcasts": [{"market": "national", "names": ["FOX"]}],
        "status": {"period": 3, "displayClock": "12:34", "type": {"state": "in"}},
    }
    comp.update(overrides)
    return {"id": "401520281", "competitions": [comp]}


def monitor_config(*categories: NotificationCategory, channels: tuple[str, ...] = ("logger",),
                   poll_minutes: int = 5, horizon_hours: float = 1,
                   stop_on_final: bool = True) -> MonitorConfig:
    return MonitorConfig(
        categories=frozenset(categories or {NotificationCategory.SCORE_CHANGE}),
        channels=channels,
        poll_interval=timedelta(minutes=poll_minutes),
        monitoring_horizon=timedelta(hours=horizon_hours),
        stop_on_final=stop_on_final,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def game() -> Game:
    return make_game()

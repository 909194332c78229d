"""
Core data models shared by the scheduler, monitors, and notification layer.

All value types are frozen: a monitor never mutates a Game in place, it derives
the next observation with Game.with_update() and keeps the previous one around
for comparison.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class GameStatus(Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "inProgress"
    FINAL = "final"

    @classmethod
    def from_espn_state(cls, state: str) -> "GameStatus":
        """ESPN reports status.type.state as "pre", "in" or "post"."""
        if state == "in":
            return cls.IN_PROGRESS
        if state == "post":
            return cls.FINAL
        return cls.SCHEDULED


class NotificationCategory(Enum):
    SCORE_CHANGE = "score_change"
    UNDERDOG = "underdog"
    OVERTIME = "overtime"


class MonitorPhase(Enum):
    WAITING_FOR_START = "waitingForStart"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class Team:
    id: str
    display_name: str
    abbreviation: str
    conference_id: str = ""
    is_favorite: bool = False   # Both flags False when no odds are known
    is_underdog: bool = False

    def __post_init__(self) -> None:
        if self.is_favorite and self.is_underdog:
            raise ValueError(f"Team {self.id} cannot be both favorite and underdog")


@dataclass(frozen=True, slots=True)
class GameUpdate:
    """Fields returned by one score fetch for a game."""
    scores: Mapping[str, str]
    current_period: int
    display_clock: str
    status: GameStatus


@dataclass(frozen=True, slots=True)
class ScoreSnapshot:
    scores: Mapping[str, str]
    current_period: int


@dataclass(frozen=True, slots=True)
class Game:
    """
    One matchup as seen by a monitor.
    scores maps team id -> score string, exactly the two participant ids.
    regulation_periods is the overtime baseline and never changes.
    """
    id: str
    sport: str
    league: str
    home: Team
    away: Team
    start_time: datetime
    status: GameStatus
    scores: Mapping[str, str] = field(hash=False)    # read-only; left out of the hash
    regulation_periods: int
    current_period: int = 0
    display_clock: str = ""
    network: str = ""
    odds: str = ""         # e.g. "MICH -7.5", display only

    def __post_init__(self) -> None:
        if set(self.scores) != {self.home.id, self.away.id}:
            raise ValueError(
                f"Game {self.id} scores must be keyed by {self.home.id!r} and {self.away.id!r}, "
                f"got {sorted(self.scores)}"
            )
        if self.current_period < 0:
            raise ValueError(f"Game {self.id} has negative period {self.current_period}")
        if self.start_time.tzinfo is None:
            object.__setattr__(self, "start_time", self.start_time.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, "start_time", self.start_time.astimezone(timezone.utc))
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    @property
    def home_score(self) -> str:
        return self.scores[self.home.id]

    @property
    def away_score(self) -> str:
        return self.scores[self.away.id]

    def snapshot(self) -> ScoreSnapshot:
        return ScoreSnapshot(scores=dict(self.scores), current_period=self.current_period)

    def with_update(self, update: GameUpdate) -> "Game":
        """
        Return the next observation of this game.
        Only scores for the two participants are taken from the update; a team
        missing from the update keeps its previous score.
        """
        scores = {
            team_id: str(update.scores.get(team_id, self.scores[team_id]))
            for team_id in (self.home.id, self.away.id)
        }
        return replace(
            self,
            scores=scores,
            current_period=update.current_period,
            display_clock=update.display_clock,
            status=update.status,
        )


@dataclass(frozen=True, slots=True)
class TrackingRequest:
    sport: str
    league: str
    teams: frozenset[str] = field(default_factory=frozenset)
    conferences: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "teams", frozenset(self.teams))
        object.__setattr__(self, "conferences", frozenset(self.conferences))


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    message: str


@dataclass(frozen=True, slots=True)
class NotificationBatch:
    """All notifications produced by one poll, addressed to one channel."""
    channel: str
    notifications: tuple[Notification, ...]

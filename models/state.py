"""
Mutable state objects held by individual monitors.
These are NOT shared across monitors; each GameMonitor owns its own trackers.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field

from models.game import Game

log = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackerState:
    """
    What a monitor remembers between polls.

    last_scores:          scores as of the last score-change notification
    last_overtime_period: highest period already announced as overtime
    underdog_leading:     underlying truth as of the last successful poll
    """
    last_scores: dict[str, str] = field(default_factory=dict)
    last_overtime_period: int = 0
    underdog_leading: bool = False

    @classmethod
    def primed_from(cls, game: Game) -> "TrackerState":
        return cls(
            last_scores=dict(game.scores),
            last_overtime_period=game.regulation_periods,
            underdog_leading=False,
        )

    def advance(
        self,
        game: Game,
        score_changed: bool,
        overtime_fired: bool,
        underdog_leading: bool,
    ) -> None:
        if score_changed:
            self.last_scores = dict(game.scores)
        if overtime_fired:
            self.last_overtime_period = game.current_period
        if underdog_leading != self.underdog_leading:
            log.debug("Underdog leading %s -> %s game=%s",
                      self.underdog_leading, underdog_leading, game.id)
        self.underdog_leading = underdog_leading

"""
Pure change detection between two observations of the same game.

Nothing here holds state: the monitor passes in what it remembers from the
previous poll and decides what to remember next.

Underdog and overtime detection are edge-triggered. The functions report the
current truth; the monitor only notifies on a false -> true transition.
"""

from __future__ import annotations
from typing import Mapping

from models.game import Game, Team

_OVERTIME_NAMES = {1: "OT", 2: "Double OT", 3: "Triple OT"}


def points(score: str | int | None) -> int:
    """Score strings from the feed ("", "14") as integers; blank or unparseable counts as 0."""
    if score is None:
        return 0
    if isinstance(score, int):
        return score
    try:
        return int(score)
    except ValueError:
        return 0


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def score_changed(prev_scores: Mapping[str, str], curr_scores: Mapping[str, str]) -> bool:
    for team_id, score in curr_scores.items():
        if team_id not in prev_scores or prev_scores[team_id] != score:
            return True
    return False


def find_underdog(game: Game) -> Team | None:
    if game.home.is_underdog:
        return game.home
    if game.away.is_underdog:
        return game.away
    return None


def underdog_took_lead(game: Game, prev_was_leading: bool) -> tuple[bool, Team | None]:
    """
    Returns (is_leading, underdog). is_leading is True when the underdog has
    strictly more points than its opponent right now; (False, None) when the
    game has no underdog.

    prev_was_leading is accepted so callers pass both observations together;
    the edge itself is computed by underdog_lead_edge().
    """
    underdog = find_underdog(game)
    if underdog is None:
        return False, None
    opponent = game.away if underdog.id == game.home.id else game.home
    leading = points(game.scores[underdog.id]) > points(game.scores[opponent.id])
    return leading, underdog


def underdog_lead_edge(game: Game, prev_was_leading: bool) -> tuple[bool, bool, Team | None]:
    """(fired, is_leading, underdog): fired only on a not-leading -> leading transition."""
    leading, underdog = underdog_took_lead(game, prev_was_leading)
    return leading and not prev_was_leading, leading, underdog


def overtime_label(overtime_number: int) -> str:
    if overtime_number in _OVERTIME_NAMES:
        return _OVERTIME_NAMES[overtime_number]
    return f"{ordinal(overtime_number)} OT"


def new_overtime_period(
    current_period: int,
    regulation_periods: int,
    last_notified_period: int,
) -> tuple[bool, str]:
    if current_period > regulation_periods and current_period > last_notified_period:
        return True, overtime_label(current_period - regulation_periods)
    return False, ""

"""
Renders notifications from a game observation.

Pure string construction, no I/O. Examples of the rendered text:

  Score Update!
  Michigan Wolverines vs Ohio State Buckeyes
  Score: MICH 14 - OSU 7
  Q3, 12:34 left on ABC

  Team Chaos!
  UCF Knights are winning in the UCF Knights vs. South Florida Bulls game on ESPN! ...

  Double OT!
  The game between the Michigan Wolverines and the Ohio State Buckeyes is in Double OT on NBC!
"""

from __future__ import annotations

from models.game import Game, Notification
from strategy.change_detector import ordinal


def period_label(sport: str, period: int) -> str:
    if sport == "baseball":
        return f"Inning {period}"
    if sport == "hockey":
        if 1 <= period <= 3:
            return f"{ordinal(period)} Period"
        return f"Period {period}"
    if sport == "soccer":
        return f"Half {period}"
    return f"Q{period}"


def score_line(game: Game) -> str:
    return (
        f"Score: {game.home.abbreviation} {game.home_score} - "
        f"{game.away.abbreviation} {game.away_score}"
    )


def build_score_update(game: Game) -> Notification:
    period = period_label(game.sport, game.current_period)
    return Notification(
        title="Score Update!",
        message=(
            f"{game.home.display_name} vs {game.away.display_name}\n"
            f"{score_line(game)}\n"
            f"{period}, {game.display_clock} left on {game.network}"
        ),
    )


def build_underdog_alert(game: Game, leading_team_name: str) -> Notification:
    period = period_label(game.sport, game.current_period)
    return Notification(
        title="Team Chaos!",
        message=(
            f"{leading_team_name} are winning in the {game.home.display_name} vs. "
            f"{game.away.display_name} game on {game.network}! "
            f"It's currently {period} with {game.display_clock} left.\n"
            f"{score_line(game)}"
        ),
    )


def build_overtime_alert(game: Game, label: str) -> Notification:
    return Notification(
        title=f"{label}!",
        message=(
            f"The game between the {game.home.display_name} and the "
            f"{game.away.display_name} is in {label} on {game.network}!\n"
            f"{score_line(game)}"
        ),
    )


def final_score_summary(game: Game) -> str:
    return (
        f"Final score: {game.home.abbreviation} {game.home_score} - "
        f"{game.away.abbreviation} {game.away_score}"
    )

"""
Normalizes ESPN scoreboard JSON into canonical Game / GameUpdate objects.

The scheduler and monitors never see provider-specific structures; everything
ESPN-shaped is translated here.

Relevant ESPN shapes (site.api.espn.com .../scoreboard):

  event.competitions[0]:
    id, date
    competitors[]: homeAway, score, team{id, displayName, abbreviation, conferenceId}
    odds[0]: details, homeTeamOdds{favorite, underdog}, awayTeamOdds{...}
    broadcasts[0]: names[]
    status: period, displayClock, type{state: pre|in|post}
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any

from models.game import Game, GameStatus, GameUpdate, Team

log = logging.getLogger(__name__)

# Normal period count per sport; overtime starts above this
_REGULATION_PERIODS: dict[str, int] = {
    "football": 4,
    "basketball": 4,
    "hockey": 3,
    "baseball": 9,
    "soccer": 2,
}

# Leagues that deviate from their sport's default
_LEAGUE_REGULATION_PERIODS: dict[tuple[str, str], int] = {
    ("basketball", "mens-college-basketball"): 2,
}

# ESPN dates come as full RFC 3339 (fractional seconds allowed) or without
# seconds ("2024-09-07T16:00Z"); these cover what fromisoformat rejects
_ESPN_TIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
)


def regulation_periods_for(sport: str, league: str) -> int:
    return _LEAGUE_REGULATION_PERIODS.get((sport, league), _REGULATION_PERIODS.get(sport, 4))


def parse_espn_time(value: str | None) -> datetime | None:
    """
    Parse an ESPN timestamp to an aware UTC datetime.
    Returns None for blank/null input; raises ValueError for garbage.
    """
    if value is None:
        return None
    value = value.strip()
    if not value or value == "null":
        return None
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _ESPN_TIME_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"Unrecognized ESPN timestamp: {value!r}")
    if parsed.tzinfo is None:
        # ESPN times without an offset are UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _score_str(raw: Any) -> str:
    # Scoreboard sends "14"; some endpoints send {"value": 14.0, "displayValue": "14"}
    if isinstance(raw, dict):
        raw = raw.get("displayValue", raw.get("value"))
    if raw is None:
        return "0"
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw)


def _espn_parse_competitors(comp: dict) -> tuple[dict, dict]:
    """Extract home and away competitor dicts from a competition object."""
    competitors = comp.get("competitors", [])
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if home is None or away is None:
        # Neutral-site listings sometimes omit homeAway; keep ESPN's order
        home, away = competitors[0], competitors[1]
    return home, away


def _odds_flags(team_odds: dict | None) -> tuple[bool, bool]:
    if not team_odds:
        return False, False
    favorite = bool(team_odds.get("favorite"))
    underdog = bool(team_odds.get("underdog"))
    if favorite and underdog:
        return False, False
    return favorite, underdog


def _team(competitor: dict, team_odds: dict | None) -> Team:
    raw = competitor.get("team", {})
    favorite, underdog = _odds_flags(team_odds)
    return Team(
        id=str(raw.get("id", competitor.get("id", ""))),
        display_name=raw.get("displayName") or raw.get("name", ""),
        abbreviation=raw.get("abbreviation", ""),
        conference_id=str(raw.get("conferenceId", "")),
        is_favorite=favorite,
        is_underdog=underdog,
    )


def _network(comp: dict) -> str:
    broadcasts = comp.get("broadcasts") or []
    if broadcasts:
        names = broadcasts[0].get("names") or []
        if names:
            return names[0]
        if broadcasts[0].get("name"):
            return broadcasts[0]["name"]
    return comp.get("broadcast", "")


def _status_fields(status: dict) -> tuple[GameStatus, int, str]:
    state = status.get("type", {}).get("state", "pre")
    period = int(status.get("period") or 0)
    return GameStatus.from_espn_state(state), max(period, 0), status.get("displayClock", "")


def espn_event_to_game(raw: dict[str, Any], sport: str, league: str) -> Game | None:
    """
    Normalize one ESPN scoreboard event to a Game.
    Returns None when the event has no usable two-team competition.
    """
    competitions = raw.get("competitions") or []
    if not competitions or len(competitions[0].get("competitors") or []) < 2:
        return None
    comp = competitions[0]

    start_time = parse_espn_time(comp.get("date") or raw.get("date"))
    if start_time is None:
        log.debug("Skipping event %s with no start time", raw.get("id"))
        return None

    home_raw, away_raw = _espn_parse_competitors(comp)
    odds = (comp.get("odds") or [{}])[0]
    home = _team(home_raw, odds.get("homeTeamOdds"))
    away = _team(away_raw, odds.get("awayTeamOdds"))
    status, period, clock = _status_fields(comp.get("status") or raw.get("status") or {})

    return Game(
        id=str(comp.get("id") or raw.get("id", "")),
        sport=sport,
        league=league,
        home=home,
        away=away,
        start_time=start_time,
        status=status,
        scores={home.id: _score_str(home_raw.get("score")), away.id: _score_str(away_raw.get("score"))},
        regulation_periods=regulation_periods_for(sport, league),
        current_period=period,
        display_clock=clock,
        network=_network(comp),
        odds=odds.get("details", ""),
    )


def espn_competition_to_update(comp: dict[str, Any]) -> GameUpdate:
    scores = {
        str(c.get("team", {}).get("id", c.get("id", ""))): _score_str(c.get("score"))
        for c in comp.get("competitors", [])
    }
    status, period, clock = _status_fields(comp.get("status") or {})
    return GameUpdate(scores=scores, current_period=period, display_clock=clock, status=status)


def find_competition(data: dict[str, Any], game_id: str) -> dict[str, Any] | None:
    for event in data.get("events", []):
        for comp in event.get("competitions") or []:
            if str(comp.get("id") or event.get("id")) == game_id:
                return comp
    return None

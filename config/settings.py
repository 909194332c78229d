"""
Environment-based configuration.
Webhook URLs come from environment variables, never hardcoded.

Usage:
    from config.settings import load_settings
    settings = load_settings()
    monitor_config = settings.monitor_config()

Nothing is read at import time: main.py loads .env first, then calls
load_settings(), and the resulting objects are passed down explicitly.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

import yaml

from models.errors import ConfigurationError
from models.game import NotificationCategory, TrackingRequest

_TRUE_VALUES = ("1", "true", "yes")


def _optional(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _number(key: str, default: str) -> float:
    raw = _optional(key, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable '{key}' must be a number, got {raw!r}") from exc


def parse_categories(names: tuple[str, ...] | list[str]) -> frozenset[NotificationCategory]:
    categories = set()
    for name in names:
        try:
            categories.add(NotificationCategory(name))
        except ValueError as exc:
            valid = ", ".join(c.value for c in NotificationCategory)
            raise ConfigurationError(f"Unknown notification type '{name}' (expected one of: {valid})") from exc
    return frozenset(categories)


@dataclass(frozen=True)
class MonitorConfig:
    """Everything that changes a monitor's behavior, passed in at construction."""
    categories: frozenset[NotificationCategory] = frozenset({NotificationCategory.SCORE_CHANGE})
    channels: tuple[str, ...] = ("logger",)
    poll_interval: timedelta = timedelta(minutes=5)
    monitoring_horizon: timedelta = timedelta(hours=5)
    stop_on_final: bool = True     # Horizon stays as the fallback

    def __post_init__(self) -> None:
        if self.poll_interval <= timedelta(0):
            raise ConfigurationError("poll_interval must be positive")
        if self.monitoring_horizon <= timedelta(0):
            raise ConfigurationError("monitoring_horizon must be positive")

    def enabled(self, category: NotificationCategory) -> bool:
        return category in self.categories


@dataclass(frozen=True)
class Settings:
    # --- Notifications ---
    notification_types: tuple[str, ...]    # score_change, underdog, overtime
    notification_channels: tuple[str, ...] # logger, slack, hass
    slack_webhook_url: str
    hass_webhook_url: str

    # --- Polling ---
    poll_interval_s: float                 # Seconds between score fetches per game
    monitoring_horizon_s: float            # Seconds after start time to keep polling
    stop_on_final: bool

    # --- Upstream ---
    espn_base_url: str                     # e.g. https://site.api.espn.com/apis/site/v2/sports
    http_timeout_s: float

    # --- Runtime ---
    log_level: str
    tracking_config_path: Path = field(default=Path("config/tracking.yaml"))

    def monitor_config(self) -> MonitorConfig:
        return MonitorConfig(
            categories=parse_categories(self.notification_types),
            channels=self.notification_channels,
            poll_interval=timedelta(seconds=self.poll_interval_s),
            monitoring_horizon=timedelta(seconds=self.monitoring_horizon_s),
            stop_on_final=self.stop_on_final,
        )


def load_settings() -> Settings:
    return Settings(
        # Unset means notify on score changes only, and only to the log
        notification_types=_csv(_optional("NOTIFICATION_TYPES")) or ("score_change",),
        notification_channels=_csv(_optional("NOTIFICATION_CHANNELS")) or ("logger",),
        slack_webhook_url=_optional("SLACK_WEBHOOK_URL"),
        hass_webhook_url=_optional("HASS_WEBHOOK_URL"),
        poll_interval_s=_number("POLL_INTERVAL_S", "300"),
        monitoring_horizon_s=_number("MONITORING_HORIZON_S", str(5 * 60 * 60)),
        stop_on_final=_optional("STOP_ON_FINAL", "true").lower() in _TRUE_VALUES,
        espn_base_url=_optional(
            "ESPN_BASE_URL",
            "https://site.api.espn.com/apis/site/v2/sports",
        ),
        http_timeout_s=_number("HTTP_TIMEOUT_S", "30"),
        log_level=_optional("LOG_LEVEL", "INFO"),
        tracking_config_path=Path(_optional("TRACKING_CONFIG_PATH", "config/tracking.yaml")),
    )


def load_tracking_requests(path: Path) -> list[TrackingRequest]:
    """
    Read tracking requests from YAML:

        requests:
          - sport: football
            league: college-football
            conferences: ["5"]
            teams: ["130"]
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    requests: list[TrackingRequest] = []
    for i, entry in enumerate(data.get("requests") or []):
        sport = str(entry.get("sport") or "").strip()
        league = str(entry.get("league") or "").strip()
        if not sport or not league:
            raise ConfigurationError(f"{path}: request #{i} needs both 'sport' and 'league'")
        requests.append(TrackingRequest(
            sport=sport,
            league=league,
            teams=frozenset(str(t) for t in entry.get("teams") or []),
            conferences=frozenset(str(c) for c in entry.get("conferences") or []),
        ))
    return requests

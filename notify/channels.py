"""
Outbound notification transports.

Every channel implements NotificationChannel; the Dispatcher depends only on
the abstract class, so adding a transport means adding a class here and a
line in build_channels().

Webhook channels share one aiohttp.ClientSession owned by the caller.
"""

from __future__ import annotations
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Sequence

import aiohttp

from models.errors import ConfigurationError, DispatchError
from models.game import Notification

if TYPE_CHECKING:
    from config.settings import Settings

log = logging.getLogger(__name__)

_OK_STATUSES = frozenset({200, 202})


class NotificationChannel(ABC):
    """Delivers an ordered batch of notifications to one destination."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def send(self, notifications: Sequence[Notification]) -> None:
        """Raise DispatchError if any notification could not be delivered."""
        ...


class LoggerChannel(NotificationChannel):
    """Writes notifications to the application log. Always available."""

    @property
    def name(self) -> str:
        return "logger"

    async def send(self, notifications: Sequence[Notification]) -> None:
        for notification in notifications:
            log.info("Notification | %s | %s", notification.title, notification.message)


class _WebhookChannel(NotificationChannel):
    def __init__(self, url: str, session: aiohttp.ClientSession) -> None:
        self._url = url
        self._session = session

    @abstractmethod
    def _payload(self, notification: Notification) -> dict[str, Any]:
        ...

    async def send(self, notifications: Sequence[Notification]) -> None:
        for notification in notifications:
            await self._post(self._payload(notification))

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            async with self._session.post(self._url, json=payload) as resp:
                if resp.status not in _OK_STATUSES:
                    body = await resp.text()
                    raise DispatchError(self.name, f"HTTP {resp.status}: {body[:200]}")
        except aiohttp.ClientError as exc:
            raise DispatchError(self.name, f"request failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise DispatchError(self.name, "request timed out") from exc


class SlackWebhookChannel(_WebhookChannel):
    @property
    def name(self) -> str:
        return "slack"

    def _payload(self, notification: Notification) -> dict[str, Any]:
        return {"text": f"*{notification.title}*\n{notification.message}"}


class HomeAssistantChannel(_WebhookChannel):
    @property
    def name(self) -> str:
        return "hass"

    def _payload(self, notification: Notification) -> dict[str, Any]:
        return {"title": notification.title, "message": notification.message}


def build_channels(
    settings: "Settings",
    session: aiohttp.ClientSession,
) -> dict[str, NotificationChannel]:
    """
    Build the channel registry for the channels named in settings.
    A requested webhook channel without its URL is a configuration error.
    Unknown names are left for the Dispatcher to reject at dispatch time.
    """
    channels: dict[str, NotificationChannel] = {"logger": LoggerChannel()}
    requested = set(settings.notification_channels)

    if settings.slack_webhook_url:
        channels["slack"] = SlackWebhookChannel(settings.slack_webhook_url, session)
    elif "slack" in requested:
        raise ConfigurationError("Channel 'slack' requested but SLACK_WEBHOOK_URL is not set")

    if settings.hass_webhook_url:
        channels["hass"] = HomeAssistantChannel(settings.hass_webhook_url, session)
    elif "hass" in requested:
        raise ConfigurationError("Channel 'hass' requested but HASS_WEBHOOK_URL is not set")

    log.info("Notification channels available: %s", sorted(channels))
    return channels

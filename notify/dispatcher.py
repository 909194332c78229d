"""
Fans one poll's notifications out to every configured channel.

Delivery is best-effort: each batch is attempted independently and a failing
channel is logged, never raised, so the monitor's lifecycle does not depend on
any transport. An unknown channel name is a configuration error and is raised.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Iterable, Mapping, Sequence

from models.errors import ConfigurationError
from models.game import Notification, NotificationBatch
from notify.channels import NotificationChannel

log = logging.getLogger(__name__)


def build_batches(
    channels: Iterable[str],
    notifications: Sequence[Notification],
) -> list[NotificationBatch]:
    items = tuple(notifications)
    return [NotificationBatch(channel=channel, notifications=items) for channel in channels]


class Dispatcher:
    def __init__(self, channels: Mapping[str, NotificationChannel]) -> None:
        self._channels = dict(channels)

    @property
    def channel_names(self) -> frozenset[str]:
        return frozenset(self._channels)

    def validate(self, names: Iterable[str]) -> None:
        unknown = sorted(set(names) - set(self._channels))
        if unknown:
            raise ConfigurationError(f"Unknown notification channel(s): {', '.join(unknown)}")

    async def dispatch(self, batches: Sequence[NotificationBatch]) -> list[str]:
        """
        Deliver every batch. Returns the names of channels that failed.
        Raises ConfigurationError, before anything is sent, for a channel name
        with no registered transport.
        """
        self.validate(batch.channel for batch in batches)
        failed: list[str] = []
        for batch in batches:
            channel = self._channels[batch.channel]
            if not batch.notifications:
                continue
            try:
                await channel.send(batch.notifications)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                failed.append(batch.channel)
                log.error(
                    "Dispatch to channel=%s failed (%d notification(s)): %s",
                    batch.channel, len(batch.notifications), exc,
                )
            else:
                log.debug("Dispatched %d notification(s) to %s",
                          len(batch.notifications), batch.channel)
        return failed

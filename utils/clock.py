"""
Wall-clock time and suspension for monitors.

Monitors never call datetime.now() or asyncio.sleep() directly, so tests can
drive a whole game's timeline with a virtual clock.
"""

from __future__ import annotations
import asyncio
from datetime import datetime, timedelta, timezone


class Clock:
    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    async def sleep(self, delay: timedelta) -> None:
        await asyncio.sleep(max(0.0, delay.total_seconds()))

    async def sleep_until(self, instant: datetime) -> None:
        """A single timed wait; returns immediately if instant has passed."""
        await self.sleep(instant - self.now())

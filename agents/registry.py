"""
Monitor Registry: start-or-attach for GameMonitors.

spawn() is synchronous and runs on the event loop thread, so the
"is this identity already running?" check and the insert cannot interleave
with another spawn. That is what guarantees one monitor per game no matter
how many times, or how concurrently, scheduling runs.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Callable

from agents.monitor import FetchScore, GameMonitor
from config.settings import MonitorConfig
from models.game import Game, MonitorPhase
from notify.dispatcher import Dispatcher
from utils.clock import Clock

log = logging.getLogger(__name__)


class MonitorHandle:
    """A reference to one running (or finished) monitor."""

    __slots__ = ("_monitor", "_task")

    def __init__(self, monitor: GameMonitor, task: asyncio.Task) -> None:
        self._monitor = monitor
        self._task = task

    @property
    def identity(self) -> str:
        return self._monitor.identity

    @property
    def phase(self) -> MonitorPhase:
        return self._monitor.phase

    def query(self) -> Game:
        return self._monitor.query()

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        return self._task.cancel()

    async def wait(self) -> str:
        """The monitor's final-score summary. Raises CancelledError if it was cancelled."""
        return await asyncio.shield(self._task)

    def __repr__(self) -> str:
        return f"MonitorHandle({self.identity!r}, phase={self.phase.value})"


class MonitorRegistry:
    def __init__(
        self,
        fetch_score: FetchScore,
        dispatcher: Dispatcher,
        config: MonitorConfig,
        clock: Clock | None = None,
    ) -> None:
        self._fetch_score = fetch_score
        self._dispatcher = dispatcher
        self._config = config
        self._clock = clock or Clock()
        self._handles: dict[str, MonitorHandle] = {}

    def spawn(self, identity: str, game: Game) -> MonitorHandle:
        """
        Start a monitor for game under identity, or return the handle of the
        monitor already running under it.
        """
        existing = self._handles.get(identity)
        if existing is not None and not existing.done():
            log.info("Monitor %s already running, attaching", identity)
            return existing

        monitor = GameMonitor(
            identity=identity,
            game=game,
            fetch_score=self._fetch_score,
            dispatcher=self._dispatcher,
            config=self._config,
            clock=self._clock,
        )
        task = asyncio.get_running_loop().create_task(monitor.run(), name=identity)
        handle = MonitorHandle(monitor, task)
        self._handles[identity] = handle
        task.add_done_callback(lambda t, ident=identity: self._on_done(ident, t))
        log.info("Spawned monitor %s (%d active)", identity, len(self.active()))
        return handle

    def get(self, identity: str) -> MonitorHandle | None:
        return self._handles.get(identity)

    def active(self) -> list[MonitorHandle]:
        return [h for h in self._handles.values() if not h.done()]

    def cancel_all(self) -> None:
        for handle in self.active():
            handle.cancel()

    async def join(self) -> None:
        """Wait for every monitor currently registered to finish."""
        tasks = [h._task for h in self._handles.values()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_done(self, identity: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Monitor %s died: %r", identity, exc)


def monitor_identity(game: Game) -> str:
    return f"game-{game.id}"


SpawnMonitor = Callable[[str, Game], MonitorHandle]
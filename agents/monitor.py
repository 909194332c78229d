"""
Game Monitor: one per game.

State machine:

  WAITING_FOR_START ──(start time reached)──▶ POLLING ──(horizon / final)──▶ STOPPED

Per poll iteration:
  1. sleep poll_interval
  2. fetch current score (failure: log, skip, no state change)
  3. derive the current Game from the previous one
  4. detect score change / underdog lead edge / new overtime period
  5. build one Notification per enabled category that fired
  6. dispatch one batch per configured channel
  7. advance trackers

Iterations are strictly sequential and the trackers are only touched between
awaits of the same task, so no locking is needed. Cancelling the task aborts
whatever await is in flight (sleep, fetch or dispatch) and sends nothing.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable

from config.settings import MonitorConfig
from models.errors import TransientFetchError
from models.game import Game, GameStatus, GameUpdate, MonitorPhase, Notification, NotificationCategory
from models.state import TrackerState
from notify.builder import (
    build_overtime_alert,
    build_score_update,
    build_underdog_alert,
    final_score_summary,
)
from notify.dispatcher import Dispatcher, build_batches
from strategy.change_detector import new_overtime_period, score_changed, underdog_lead_edge
from utils.clock import Clock

log = logging.getLogger(__name__)

FetchScore = Callable[[Game], Awaitable[GameUpdate]]


class GameMonitor:
    def __init__(
        self,
        identity: str,
        game: Game,
        fetch_score: FetchScore,
        dispatcher: Dispatcher,
        config: MonitorConfig,
        clock: Clock | None = None,
    ) -> None:
        self._identity = identity
        self._initial_game = game
        self._game = game
        self._fetch_score = fetch_score
        self._dispatcher = dispatcher
        self._config = config
        self._clock = clock or Clock()
        self._phase = MonitorPhase.WAITING_FOR_START
        self._trackers = TrackerState.primed_from(game)
        self._polls = 0
        self._consecutive_errors = 0

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def phase(self) -> MonitorPhase:
        return self._phase

    @property
    def initial_game(self) -> Game:
        return self._initial_game

    @property
    def game(self) -> Game:
        return self._game

    @property
    def trackers(self) -> TrackerState:
        return self._trackers

    def query(self) -> Game:
        """Current snapshot. Game is immutable, so callers may hold on to it."""
        return self._game

    async def run(self) -> str:
        log.info(
            "Starting monitor %s: %s vs %s at %s",
            self._identity, self._game.home.display_name,
            self._game.away.display_name, self._game.start_time.isoformat(),
        )
        try:
            await self._wait_for_start()
            self._start_polling()
            await self._poll_until_done()
        except asyncio.CancelledError:
            log.info("Monitor %s cancelled after %d poll(s)", self._identity, self._polls)
            raise
        finally:
            self._phase = MonitorPhase.STOPPED

        summary = final_score_summary(self._game)
        log.info("Monitor %s completed: %s", self._identity, summary)
        return summary

    async def _wait_for_start(self) -> None:
        start_time = self._game.start_time
        if start_time > self._clock.now():
            log.info("Monitor %s waiting for game to start at %s", self._identity, start_time.isoformat())
            await self._clock.sleep_until(start_time)

    def _start_polling(self) -> None:
        self._trackers = TrackerState.primed_from(self._game)
        self._phase = MonitorPhase.POLLING
        log.info("Monitor %s polling every %s", self._identity, self._config.poll_interval)

    async def _poll_until_done(self) -> None:
        deadline = self._game.start_time + self._config.monitoring_horizon
        while self._clock.now() < deadline:
            await self._clock.sleep(self._config.poll_interval)
            game = await self.poll_once()
            if game is not None and self._config.stop_on_final and game.status is GameStatus.FINAL:
                log.info("Monitor %s saw final status, stopping early", self._identity)
                return

    async def poll_once(self) -> Game | None:
        """
        One fetch -> detect -> build -> dispatch -> advance cycle.
        Returns the new observation, or None when the fetch failed.
        """
        self._polls += 1
        previous = self._game
        try:
            update = await self._fetch_score(previous)
        except Exception as exc:
            self._record_fetch_error(exc)
            return None
        self._consecutive_errors = 0

        current = previous.with_update(update)
        self._game = current

        notifications, changed, overtime_fired, underdog_leading = self.evaluate(current)

        if notifications:
            log.info("Monitor %s sending %d notification(s) to %s",
                     self._identity, len(notifications), list(self._config.channels))
            failed = await self._dispatcher.dispatch(build_batches(self._config.channels, notifications))
            if failed:
                log.warning("Monitor %s: delivery failed on %s", self._identity, failed)

        self._trackers.advance(
            current,
            score_changed=changed,
            overtime_fired=overtime_fired,
            underdog_leading=underdog_leading,
        )
        return current

    def evaluate(self, game: Game) -> tuple[list[Notification], bool, bool, bool]:
        """
        Compare game against the trackers without changing them.
        Returns (notifications, score_changed, overtime_fired, underdog_leading).
        """
        trackers = self._trackers
        notifications: list[Notification] = []

        changed = score_changed(trackers.last_scores, game.scores)
        if changed:
            log.info("Score change detected game=%s %s", game.id, dict(game.scores))
            if self._config.enabled(NotificationCategory.SCORE_CHANGE):
                notifications.append(build_score_update(game))

        underdog_fired, underdog_leading, underdog = underdog_lead_edge(game, trackers.underdog_leading)
        if underdog_fired and underdog is not None:
            log.info("Underdog %s took the lead game=%s", underdog.display_name, game.id)
            if self._config.enabled(NotificationCategory.UNDERDOG):
                notifications.append(build_underdog_alert(game, underdog.display_name))

        overtime_fired, label = new_overtime_period(
            game.current_period, game.regulation_periods, trackers.last_overtime_period,
        )
        if overtime_fired:
            log.info("New overtime period %s game=%s", label, game.id)
            if self._config.enabled(NotificationCategory.OVERTIME):
                notifications.append(build_overtime_alert(game, label))
            else:
                overtime_fired = False

        return notifications, changed, overtime_fired, underdog_leading

    def _record_fetch_error(self, exc: Exception) -> None:
        self._consecutive_errors += 1
        if not isinstance(exc, TransientFetchError):
            log.exception("Monitor %s unexpected fetch error: %s", self._identity, exc)
            return
        log.warning(
            "Monitor %s failed to fetch score (×%d), skipping poll: %s",
            self._identity, self._consecutive_errors, exc,
        )

"""
Sports Notifier: Main Entrypoint

Boots the asyncio event loop, schedules monitors for every configured tracking
request, and runs until SIGINT/SIGTERM is received or every monitor finishes.

Startup sequence:
  1. Load settings from environment (.env supported)
  2. Initialize the ESPN feed client and the webhook session
  3. Build channels, dispatcher, monitor registry and scheduler
  4. Run the scheduler once per tracking request in config/tracking.yaml
  5. Wait for shutdown signal or all monitors to complete

Shutdown sequence:
  1. Cancel running monitors
  2. Close network connections
"""

from __future__ import annotations
import asyncio
import logging
import signal

import aiohttp
from dotenv import load_dotenv

from agents.collector import CollectionScheduler
from agents.registry import MonitorRegistry
from config.settings import load_settings, load_tracking_requests
from notify.channels import build_channels
from notify.dispatcher import Dispatcher
from sports.espn import ESPNClient
from utils.logger import setup_logging

log = logging.getLogger(__name__)


async def run() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)
    monitor_config = settings.monitor_config()
    log.info(
        "Sports Notifier starting (types=%s channels=%s poll=%ss horizon=%ss)",
        ",".join(settings.notification_types), ",".join(settings.notification_channels),
        settings.poll_interval_s, settings.monitoring_horizon_s,
    )

    requests = load_tracking_requests(settings.tracking_config_path)

    # -----------------------------------------------------------------------
    # Infrastructure
    # -----------------------------------------------------------------------
    feed = ESPNClient(base_url=settings.espn_base_url, timeout_s=settings.http_timeout_s)
    webhook_session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout_s, connect=5),
    )

    try:
        dispatcher = Dispatcher(build_channels(settings, webhook_session))
        dispatcher.validate(monitor_config.channels)

        registry = MonitorRegistry(
            fetch_score=feed.fetch_game_score,
            dispatcher=dispatcher,
            config=monitor_config,
        )
        scheduler = CollectionScheduler(feed=feed, registry=registry)

        await feed.startup()

        # -------------------------------------------------------------------
        # Schedule monitors
        # -------------------------------------------------------------------
        for request in requests:
            total = await scheduler.collect(request)
            log.info("%s/%s: %d game(s) discovered", request.sport, request.league, total)

        active = registry.active()
        log.info("%d monitor(s) running: %s", len(active), [h.identity for h in active])

        # -------------------------------------------------------------------
        # Wait for shutdown signal or all monitors to finish
        # -------------------------------------------------------------------
        shutdown_event = asyncio.Event()

        def _handle_signal(sig: signal.Signals) -> None:
            log.info("Received %s, initiating graceful shutdown", sig.name)
            shutdown_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _handle_signal, sig)

        shutdown_wait = asyncio.create_task(shutdown_event.wait(), name="shutdown")
        monitors_wait = asyncio.create_task(registry.join(), name="monitors")
        await asyncio.wait({shutdown_wait, monitors_wait}, return_when=asyncio.FIRST_COMPLETED)

        # -------------------------------------------------------------------
        # Graceful shutdown
        # -------------------------------------------------------------------
        log.info("Shutting down...")
        shutdown_wait.cancel()
        registry.cancel_all()
        await monitors_wait
    finally:
        await feed.shutdown()
        await webhook_session.close()
    log.info("Sports Notifier stopped cleanly.")


def main() -> None:
    try:
        import uvloop  # type: ignore
    except ImportError:  # Windows
        asyncio.run(run())
    else:
        uvloop.run(run())


if __name__ == "__main__":
    main()

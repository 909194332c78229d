"""
Logging setup for the notifier.
Call setup_logging() once at startup in main.py.

Every record carries the name of the asyncio task that emitted it. Monitor
tasks are named after their identity ("game-401520281"), so interleaved
output from many concurrent monitors can be told apart.
"""

from __future__ import annotations
import asyncio
import logging
import sys
import time

# aiohttp logs every access/connection detail at INFO
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


def _current_task_name() -> str:
    try:
        task = asyncio.current_task()
    except RuntimeError:    # No running loop
        return "-"
    return task.get_name() if task is not None else "-"


class _TaskFormatter(logging.Formatter):
    """Adds the current task name and a monotonic timestamp to every record."""

    def format(self, record: logging.LogRecord) -> str:
        record.task = _current_task_name()
        record.mono_ns = time.monotonic_ns()
        return super().format(record)


def setup_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        _TaskFormatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s [%(task)s] | mono_ns=%(mono_ns)d | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root = logging.getLogger()
    root.setLevel(numeric)
    root.handlers.clear()
    root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))

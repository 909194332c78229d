"""
Error taxonomy.

  TransientFetchError  - one poll failed upstream; the monitor skips it
  DispatchError        - one channel failed to deliver; isolated per channel
  SchedulingError      - discovery or spawn failed; fatal to that collect() run
  ConfigurationError   - bad channel/category/request/env; fatal, never retried
"""

from __future__ import annotations


class SportsNotifierError(Exception):
    pass


class TransientFetchError(SportsNotifierError):
    pass


class DispatchError(SportsNotifierError):
    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"[{channel}] {message}")
        self.channel = channel


class SchedulingError(SportsNotifierError):
    pass


class ConfigurationError(SportsNotifierError):
    pass

"""
PlumageSessions - Clocks.

Staleness is computed in integer milliseconds since the epoch.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in epoch milliseconds."""
    
    def now_ms(self) -> int:
        ...


class SystemClock:
    """Wall clock."""
    
    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock:
    """
    Clock that only moves when told to.
    
    Example:
        >>> clock = ManualClock(0)
        >>> clock.advance(500_000)
        >>> clock.now_ms()
        500000
    """
    
    def __init__(self, now_ms: int = 0):
        self._now = now_ms
    
    def now_ms(self) -> int:
        return self._now
    
    def set(self, now_ms: int) -> None:
        self._now = now_ms
    
    def advance(self, ms: int) -> None:
        self._now += ms

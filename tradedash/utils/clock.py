from __future__ import annotations

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    @abstractmethod
    def now_ms(self) -> int: ...


class SystemClock(Clock):
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock(Clock):
    """Frozen instant, for replaying a fetch with deterministic synthesized timestamps."""

    def __init__(self, now_ms: int) -> None:
        self._now_ms = int(now_ms)

    def now_ms(self) -> int:
        return self._now_ms

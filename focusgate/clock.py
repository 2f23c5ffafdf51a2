from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        ...


class RealClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FakeClock:
    def __init__(self, start_ms: int = 0) -> None:
        self._current = int(start_ms)

    def now_ms(self) -> int:
        return self._current

    def set(self, value_ms: int) -> None:
        self._current = int(value_ms)

    def advance(self, ms: int = 0, seconds: float = 0, minutes: float = 0) -> int:
        self._current += int(ms + seconds * 1000 + minutes * 60_000)
        return self._current

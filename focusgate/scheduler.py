from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], object]


class Scheduler(Protocol):
    def arm(self, callback: TickCallback) -> None:
        ...

    def clear(self) -> None:
        ...


class NullScheduler:
    """Used when ticks come from outside the process (cron, ``focusgate tick``)."""

    def arm(self, callback: TickCallback) -> None:
        return None

    def clear(self) -> None:
        return None


class IntervalScheduler:
    """Calls the armed callback every ``period_seconds`` on a daemon thread.

    The period is coarse and drift is expected; a late or skipped call only
    delays phase completion, because the callback recomputes everything from
    wall-clock timestamps.
    """

    def __init__(self, period_seconds: float = 60.0) -> None:
        self.period_seconds = max(0.01, float(period_seconds))
        self._lock = Lock()
        self._thread: Thread | None = None
        self._stop: Event | None = None

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._is_alive()

    def arm(self, callback: TickCallback) -> None:
        with self._lock:
            if self._is_alive():
                return
            stop = Event()
            thread = Thread(
                target=self._loop,
                args=(callback, stop),
                name="focusgate-tick",
                daemon=True,
            )
            self._stop = stop
            self._thread = thread
            thread.start()
        logger.debug("tick scheduler armed (every %.1fs)", self.period_seconds)

    def clear(self) -> None:
        with self._lock:
            stop = self._stop
            self._stop = None
            self._thread = None
        if stop is None:
            return
        # The loop may be inside the callback that asked for this; never join.
        stop.set()
        logger.debug("tick scheduler cleared")

    def _is_alive(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self._stop is not None
            and not self._stop.is_set()
        )

    def _loop(self, callback: TickCallback, stop: Event) -> None:
        while not stop.wait(self.period_seconds):
            try:
                callback()
            except Exception:
                logger.exception("scheduled tick failed")

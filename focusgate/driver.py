"""The process-wide owner of the Pomodoro session.

``SessionDriver`` holds the only ``SessionClock`` in the process. Every
command runs under one re-entrant lock from the first read to the finished
store write, so HTTP handlers, CLI calls and the tick thread never observe
half-applied state. The clock is written to the store after each mutation and
read back from it when the driver is built, before any command is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
from threading import Lock, RLock
from typing import Any, Callable, Mapping

from .clock import Clock, RealClock
from .config import AppConfig
from .errors import PersistenceError
from .notifier import Notifier, PhaseNotifier
from .scheduler import IntervalScheduler, NullScheduler, Scheduler
from .session_clock import (
    Durations,
    Phase,
    PhaseCompleted,
    SessionClock,
    next_phase_after,
)
from .store import MemoryStateStore, SQLiteStateStore, StateStore

logger = logging.getLogger(__name__)

PhaseListener = Callable[[PhaseCompleted], None]


@dataclass(frozen=True)
class StateSnapshot:
    running: bool
    phase: Phase
    remaining_ms: int
    total_ms: int
    completed_count: int
    durations: Durations
    progress: float
    started_at_ms: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "phase": self.phase.value,
            "remaining_ms": self.remaining_ms,
            "total_ms": self.total_ms,
            "completed_count": self.completed_count,
            "durations": self.durations.to_dict(),
            "progress": self.progress,
            "started_at_ms": self.started_at_ms,
        }


class SessionDriver:
    def __init__(
        self,
        store: StateStore,
        clock: Clock | None = None,
        notifier: PhaseNotifier | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._lock = RLock()
        self.store = store
        self.clock = clock or RealClock()
        self.notifier = notifier
        self.scheduler = scheduler or NullScheduler()
        self._listeners: list[PhaseListener] = []
        self._subscribers: list[queue.Queue[dict[str, Any]]] = []
        self._session = self._restore()
        if self._session.running:
            # A respawned process has no live timer; resume polling.
            self.scheduler.arm(self.tick)

    # ----- commands -----
    def start(self, now_ms: int | None = None) -> StateSnapshot:
        with self._lock:
            now = self._now(now_ms)
            if self._session.running:
                return self._snapshot(now)
            self._session.mark_started(now)
            self._persist()
            self.scheduler.arm(self.tick)
            logger.info(
                "%s started with %d ms remaining",
                self._session.phase.value,
                self._session.baseline_remaining_ms,
            )
            return self._snapshot(now)

    def stop(self, now_ms: int | None = None) -> StateSnapshot:
        with self._lock:
            now = self._now(now_ms)
            if self._stop_locked(now):
                self._persist()
            return self._snapshot(now)

    def reset(self, now_ms: int | None = None) -> StateSnapshot:
        with self._lock:
            now = self._now(now_ms)
            self._stop_locked(now)
            self._session.reset_in_place()
            self._persist()
            logger.info("session reset")
            return self._snapshot(now)

    def complete_current_phase(self, now_ms: int | None = None) -> PhaseCompleted:
        with self._lock:
            event = self._complete_locked(self._now(now_ms))
        self._deliver_notification(event)
        return event

    def update_settings(self, changes: Mapping[str, Any]) -> Durations:
        with self._lock:
            # Raises before anything is touched.
            merged = self._session.durations.merged(changes)
            self._session.durations = merged
            if not self._session.running:
                self._session.baseline_remaining_ms = self._session.phase_duration_ms()
            self._persist()
            logger.info("settings updated: %s", merged.to_dict())
            return merged

    def get_state(self, now_ms: int | None = None) -> StateSnapshot:
        with self._lock:
            return self._snapshot(self._now(now_ms))

    def tick(self, now_ms: int | None = None) -> bool:
        """Complete the running phase if its time is up.

        Returns True when a transition happened. Safe to call late, often or
        repeatedly: a paused clock is never touched.
        """
        with self._lock:
            now = self._now(now_ms)
            if not self._session.running:
                return False
            remaining = self._session.effective_remaining_ms(now)
            if remaining > 0:
                logger.debug(
                    "%s still running, %d ms remaining",
                    self._session.phase.value,
                    remaining,
                )
                return False
            event = self._complete_locked(now)
        self._deliver_notification(event)
        return True

    def durations(self) -> Durations:
        with self._lock:
            return self._session.durations

    def session(self) -> SessionClock:
        with self._lock:
            return self._session.copy()

    def close(self) -> None:
        self.scheduler.clear()

    # ----- events -----
    def add_listener(self, listener: PhaseListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: PhaseListener) -> None:
        with self._lock:
            self._listeners = [item for item in self._listeners if item is not listener]

    def subscribe(self) -> queue.Queue[dict[str, Any]]:
        q: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=200)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue[dict[str, Any]]) -> None:
        with self._lock:
            self._subscribers = [item for item in self._subscribers if item is not q]

    def _emit(self, event: PhaseCompleted) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning("phase listener %r failed", listener, exc_info=True)

        payload = event.to_dict()
        alive: list[queue.Queue[dict[str, Any]]] = []
        for q in self._subscribers:
            try:
                q.put_nowait(payload)
                alive.append(q)
            except queue.Full:
                continue
        self._subscribers = alive

    def _deliver_notification(self, event: PhaseCompleted) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.announce(event)
        except Exception:
            logger.warning("completion notification was not delivered", exc_info=True)

    # ----- internals -----
    def _now(self, now_ms: int | None) -> int:
        return self.clock.now_ms() if now_ms is None else int(now_ms)

    def _complete_locked(self, now: int) -> PhaseCompleted:
        self._stop_locked(now)

        session = self._session
        completed_phase = session.phase
        completed_count = session.completed_count
        if completed_phase is Phase.WORK:
            completed_count += 1
        event = PhaseCompleted(
            completed_phase=completed_phase,
            next_phase=next_phase_after(completed_phase, completed_count, session.durations),
            completed_count=completed_count,
        )
        # Listeners run before the phase moves so they can still read it.
        self._emit(event)

        session.completed_count = completed_count
        session.enter_phase(event.next_phase)
        self._persist()
        logger.info(
            "%s completed (#%d), next phase %s",
            event.completed_phase.value,
            event.completed_count,
            event.next_phase.value,
        )
        return event

    def _stop_locked(self, now: int) -> bool:
        if not self._session.running:
            return False
        self._session.freeze(now)
        self.scheduler.clear()
        logger.info(
            "%s paused with %d ms remaining",
            self._session.phase.value,
            self._session.baseline_remaining_ms,
        )
        return True

    def _snapshot(self, now: int) -> StateSnapshot:
        session = self._session
        return StateSnapshot(
            running=session.running,
            phase=session.phase,
            remaining_ms=session.effective_remaining_ms(now),
            total_ms=session.phase_duration_ms(),
            completed_count=session.completed_count,
            durations=session.durations,
            progress=session.progress_fraction(now),
            started_at_ms=session.started_at_ms,
        )

    def _persist(self) -> None:
        try:
            self.store.save(self._session.to_record())
        except PersistenceError:
            # Memory stays authoritative; the next successful save catches up.
            logger.error("could not persist session state", exc_info=True)

    def _restore(self) -> SessionClock:
        try:
            record = self.store.load()
        except PersistenceError:
            logger.error("could not load session state, starting fresh", exc_info=True)
            return SessionClock.fresh()

        if record is None:
            logger.info("no saved session, starting fresh")
            return SessionClock.fresh()

        try:
            session = SessionClock.from_record(record)
        except ValueError:
            logger.error("saved session is unreadable, starting fresh", exc_info=True)
            return SessionClock.fresh()

        logger.info(
            "restored %s (%s), %d completed",
            session.phase.value,
            "running" if session.running else "paused",
            session.completed_count,
        )
        return session


_driver: SessionDriver | None = None
_driver_lock = Lock()


def configure_driver(
    store: StateStore,
    clock: Clock | None = None,
    notifier: PhaseNotifier | None = None,
    scheduler: Scheduler | None = None,
) -> SessionDriver:
    """Install the process driver, replacing (and closing) any previous one."""
    global _driver
    with _driver_lock:
        if _driver is not None:
            _driver.close()
        _driver = SessionDriver(store=store, clock=clock, notifier=notifier, scheduler=scheduler)
        return _driver


def get_driver() -> SessionDriver:
    with _driver_lock:
        if _driver is None:
            raise RuntimeError("session driver is not configured")
        return _driver


def driver_from_config(config: AppConfig, with_scheduler: bool = True) -> SessionDriver:
    notifier = Notifier(speak=config.speak) if config.notify else None
    scheduler = IntervalScheduler(config.tick_seconds) if with_scheduler else NullScheduler()
    store: StateStore
    try:
        store = SQLiteStateStore(config.db_path)
    except PersistenceError:
        logger.error("state store unavailable, keeping state in memory only", exc_info=True)
        store = MemoryStateStore()
    return configure_driver(
        store=store,
        clock=RealClock(),
        notifier=notifier,
        scheduler=scheduler,
    )

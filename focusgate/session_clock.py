"""Pomodoro session state and the time arithmetic around it.

Nothing in this module performs I/O. Remaining time is always derived from
a frozen baseline and a wall-clock start timestamp, so a clock restored from
storage in a fresh process reads exactly like the one that was saved.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from .errors import InvalidConfigError

MS_PER_MINUTE = 60_000
RECORD_VERSION = 1

DURATION_LIMITS: dict[str, tuple[int, int]] = {
    "work_minutes": (1, 60),
    "short_break_minutes": (1, 30),
    "long_break_minutes": (1, 60),
    "long_break_interval": (2, 10),
}

FIELD_LABELS: dict[str, str] = {
    "work_minutes": "工作时长",
    "short_break_minutes": "短休息时长",
    "long_break_minutes": "长休息时长",
    "long_break_interval": "长休息间隔",
}


class Phase(str, Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def label(self) -> str:
        return PHASE_LABELS[self]


PHASE_LABELS: dict[Phase, str] = {
    Phase.WORK: "工作",
    Phase.SHORT_BREAK: "短休息",
    Phase.LONG_BREAK: "长休息",
}


def validate_durations(changes: Mapping[str, Any]) -> dict[str, int]:
    """Check a partial durations update and return only the fields it sets.

    ``None`` values are treated as unset. Raises ``InvalidConfigError`` for
    unknown keys, non-integers and out-of-range values; nothing is returned
    unless every supplied field is valid.
    """
    clean: dict[str, int] = {}
    for key, value in changes.items():
        if key not in DURATION_LIMITS:
            raise InvalidConfigError(f"未知的设置项：{key}", field=key)
        if value is None:
            continue
        label = FIELD_LABELS[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidConfigError(f"{label} 必须是整数", field=key)
        if isinstance(value, float) and not value.is_integer():
            raise InvalidConfigError(f"{label} 必须是整数", field=key)
        low, high = DURATION_LIMITS[key]
        number = int(value)
        if number < low or number > high:
            raise InvalidConfigError(f"{label} 必须在 {low} 到 {high} 之间", field=key)
        clean[key] = number
    return clean


@dataclass(frozen=True)
class Durations:
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_interval: int = 4

    def merged(self, changes: Mapping[str, Any]) -> Durations:
        return replace(self, **validate_durations(changes))

    def minutes_for(self, phase: Phase) -> int:
        if phase is Phase.SHORT_BREAK:
            return self.short_break_minutes
        if phase is Phase.LONG_BREAK:
            return self.long_break_minutes
        return self.work_minutes

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Durations:
        """Lenient decode: each bad or missing field falls back to its default."""
        result = cls()
        for key, value in (data or {}).items():
            if key not in DURATION_LIMITS:
                continue
            try:
                result = replace(result, **validate_durations({key: value}))
            except InvalidConfigError:
                continue
        return result


def phase_duration_ms(phase: Phase, durations: Durations) -> int:
    return durations.minutes_for(phase) * MS_PER_MINUTE


def next_phase_after(phase: Phase, completed_count: int, durations: Durations) -> Phase:
    """Phase that follows ``phase``.

    ``completed_count`` is the number of finished work phases including the
    one that just ended.
    """
    if phase is not Phase.WORK:
        return Phase.WORK
    if completed_count > 0 and completed_count % durations.long_break_interval == 0:
        return Phase.LONG_BREAK
    return Phase.SHORT_BREAK


@dataclass
class SessionClock:
    phase: Phase = Phase.WORK
    running: bool = False
    baseline_remaining_ms: int = 0
    started_at_ms: int | None = None
    completed_count: int = 0
    durations: Durations = field(default_factory=Durations)

    @classmethod
    def fresh(cls, durations: Durations | None = None) -> SessionClock:
        resolved = durations or Durations()
        return cls(
            baseline_remaining_ms=phase_duration_ms(Phase.WORK, resolved),
            durations=resolved,
        )

    def phase_duration_ms(self, phase: Phase | None = None) -> int:
        return phase_duration_ms(phase or self.phase, self.durations)

    def elapsed_ms(self, now_ms: int) -> int:
        if not self.running or self.started_at_ms is None:
            return 0
        # A wall clock that stepped backwards counts as no time passed.
        return max(0, now_ms - self.started_at_ms)

    def effective_remaining_ms(self, now_ms: int) -> int:
        return max(0, self.baseline_remaining_ms - self.elapsed_ms(now_ms))

    def progress_fraction(self, now_ms: int) -> float:
        total = self.phase_duration_ms()
        if total <= 0:
            return 0.0
        fraction = (total - self.effective_remaining_ms(now_ms)) / total
        return min(1.0, max(0.0, fraction))

    def mark_started(self, now_ms: int) -> None:
        self.running = True
        self.started_at_ms = now_ms

    def freeze(self, now_ms: int) -> None:
        # A running phase keeps its original length; once paused it must fit
        # the current durations again.
        remaining = self.effective_remaining_ms(now_ms)
        self.baseline_remaining_ms = min(remaining, self.phase_duration_ms())
        self.running = False
        self.started_at_ms = None

    def enter_phase(self, phase: Phase) -> None:
        self.phase = phase
        self.baseline_remaining_ms = self.phase_duration_ms(phase)

    def reset_in_place(self) -> None:
        self.running = False
        self.started_at_ms = None
        self.completed_count = 0
        self.enter_phase(Phase.WORK)

    def copy(self) -> SessionClock:
        return replace(self)

    def to_record(self) -> dict[str, Any]:
        return {
            "version": RECORD_VERSION,
            "phase": self.phase.value,
            "running": self.running,
            "baseline_remaining_ms": self.baseline_remaining_ms,
            "started_at_ms": self.started_at_ms,
            "completed_count": self.completed_count,
            "durations": self.durations.to_dict(),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> SessionClock:
        """Rebuild a clock from ``to_record`` output.

        Raises ``ValueError`` when the record cannot be decoded at all; fields
        that decode but break an invariant are repaired instead.
        """
        if not isinstance(data, Mapping):
            raise ValueError("session record must be a mapping")

        try:
            phase = Phase(data.get("phase", Phase.WORK.value))
        except ValueError as exc:
            raise ValueError(f"unknown phase: {data.get('phase')!r}") from exc

        durations = Durations.from_dict(data.get("durations"))
        full = phase_duration_ms(phase, durations)

        raw_baseline = data.get("baseline_remaining_ms")
        baseline = full if raw_baseline is None else _as_int(raw_baseline, "baseline_remaining_ms")
        started_at = data.get("started_at_ms")
        started_at = None if started_at is None else _as_int(started_at, "started_at_ms")
        running = bool(data.get("running", False)) and started_at is not None
        if not running:
            started_at = None

        baseline = max(0, baseline)
        if not running:
            baseline = min(baseline, full)

        completed = max(0, _as_int(data.get("completed_count", 0), "completed_count"))
        return cls(
            phase=phase,
            running=running,
            baseline_remaining_ms=baseline,
            started_at_ms=started_at,
            completed_count=completed,
            durations=durations,
        )


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class PhaseCompleted:
    completed_phase: Phase
    next_phase: Phase
    completed_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": "phaseCompleted",
            "completed_phase": self.completed_phase.value,
            "next_phase": self.next_phase.value,
            "completed_count": self.completed_count,
        }

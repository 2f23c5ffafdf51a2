from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DurationsOut(BaseModel):
    work_minutes: int
    short_break_minutes: int
    long_break_minutes: int
    long_break_interval: int


class DurationsPatch(BaseModel):
    """Partial settings update; omitted fields keep their current values."""

    model_config = ConfigDict(extra="forbid")

    work_minutes: int | None = None
    short_break_minutes: int | None = None
    long_break_minutes: int | None = None
    long_break_interval: int | None = None


class StateOut(BaseModel):
    running: bool
    phase: str
    remaining_ms: int
    total_ms: int
    completed_count: int
    durations: DurationsOut
    progress: float
    started_at_ms: int | None = None


class TickOut(BaseModel):
    transitioned: bool
    state: StateOut


class WebsitesIn(BaseModel):
    websites: list[str]


class WebsitesOut(BaseModel):
    websites: list[str]
    enabled: bool


class GateIn(BaseModel):
    enabled: bool


class GateOut(BaseModel):
    enabled: bool


class CheckOut(BaseModel):
    url: str
    redirect: bool


class HealthOut(BaseModel):
    status: str = Field(default="ok")


class MetaOut(BaseModel):
    app: str
    version: str
    db_path: str
    platform: str

from __future__ import annotations

import json
import queue
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ...driver import SessionDriver, StateSnapshot
from ...errors import InvalidConfigError
from ..deps import get_driver
from ..schemas import DurationsOut, DurationsPatch, StateOut, TickOut

router = APIRouter(prefix="/api/v1", tags=["timer"])


def _state_out(snapshot: StateSnapshot) -> StateOut:
    return StateOut(**snapshot.to_dict())


@router.get("/timer/state", response_model=StateOut)
def timer_state(driver: SessionDriver = Depends(get_driver)) -> StateOut:
    return _state_out(driver.get_state())


@router.post("/timer/start", response_model=StateOut)
def start_timer(driver: SessionDriver = Depends(get_driver)) -> StateOut:
    return _state_out(driver.start())


@router.post("/timer/stop", response_model=StateOut)
def stop_timer(driver: SessionDriver = Depends(get_driver)) -> StateOut:
    return _state_out(driver.stop())


@router.post("/timer/reset", response_model=StateOut)
def reset_timer(driver: SessionDriver = Depends(get_driver)) -> StateOut:
    return _state_out(driver.reset())


@router.post("/timer/tick", response_model=TickOut)
def tick_timer(driver: SessionDriver = Depends(get_driver)) -> TickOut:
    transitioned = driver.tick()
    return TickOut(transitioned=transitioned, state=_state_out(driver.get_state()))


@router.get("/timer/settings", response_model=DurationsOut)
def get_settings(driver: SessionDriver = Depends(get_driver)) -> DurationsOut:
    return DurationsOut(**driver.durations().to_dict())


@router.put("/timer/settings", response_model=DurationsOut)
def update_settings(
    payload: DurationsPatch,
    driver: SessionDriver = Depends(get_driver),
) -> DurationsOut:
    try:
        durations = driver.update_settings(payload.model_dump(exclude_none=True))
    except InvalidConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return DurationsOut(**durations.to_dict())


@router.get("/timer/stream")
def timer_stream(driver: SessionDriver = Depends(get_driver)) -> StreamingResponse:
    subscriber = driver.subscribe()

    def event_iter() -> Iterator[str]:
        try:
            while True:
                try:
                    event = subscriber.get(timeout=10)
                    yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
                except queue.Empty:
                    yield ": keepalive\n\n"
        finally:
            driver.unsubscribe(subscriber)

    return StreamingResponse(event_iter(), media_type="text/event-stream")

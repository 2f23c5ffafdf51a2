from __future__ import annotations

import platform

from fastapi import APIRouter, Request

from ... import __version__
from ..schemas import HealthOut, MetaOut

router = APIRouter(prefix="/api/v1", tags=["system"])


@router.get("/health", response_model=HealthOut)
def health() -> HealthOut:
    return HealthOut()


@router.get("/meta", response_model=MetaOut)
def meta(request: Request) -> MetaOut:
    return MetaOut(
        app="FocusGate",
        version=__version__,
        db_path=str(request.app.state.db_path),
        platform=platform.platform(),
    )

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .. import __version__
from ..config import AppConfig
from ..driver import SessionDriver, driver_from_config
from .routes.system import router as system_router
from .routes.timer import router as timer_router
from .routes.websites import router as websites_router


def create_app(driver: SessionDriver | None = None, config: AppConfig | None = None) -> FastAPI:
    resolved_config = config or AppConfig.from_env()
    resolved_driver = driver or driver_from_config(resolved_config)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            resolved_driver.close()

    app = FastAPI(title="FocusGate API", version=__version__, lifespan=lifespan)
    app.state.driver = resolved_driver
    app.state.db_path = str(getattr(resolved_driver.store, "db_path", resolved_config.db_path))

    app.include_router(system_router)
    app.include_router(timer_router)
    app.include_router(websites_router)
    return app


def create_default_app() -> FastAPI:
    return create_app(config=AppConfig.from_env())

from __future__ import annotations

from fastapi import Request

from ..blocklist import BlockList
from ..driver import SessionDriver


def get_driver(request: Request) -> SessionDriver:
    return request.app.state.driver


def get_blocklist(request: Request) -> BlockList:
    driver: SessionDriver = request.app.state.driver
    return BlockList(driver.store)

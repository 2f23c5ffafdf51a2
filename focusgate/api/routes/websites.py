from __future__ import annotations

from fastapi import APIRouter, Depends

from ...blocklist import BlockList
from ..deps import get_blocklist
from ..schemas import CheckOut, GateIn, GateOut, WebsitesIn, WebsitesOut

router = APIRouter(prefix="/api/v1", tags=["gate"])


@router.get("/websites", response_model=WebsitesOut)
def list_websites(blocklist: BlockList = Depends(get_blocklist)) -> WebsitesOut:
    return WebsitesOut(websites=blocklist.websites(), enabled=blocklist.enabled())


@router.put("/websites", response_model=WebsitesOut)
def replace_websites(
    payload: WebsitesIn,
    blocklist: BlockList = Depends(get_blocklist),
) -> WebsitesOut:
    websites = blocklist.replace(payload.websites)
    return WebsitesOut(websites=websites, enabled=blocklist.enabled())


@router.get("/websites/check", response_model=CheckOut)
def check_url(url: str, blocklist: BlockList = Depends(get_blocklist)) -> CheckOut:
    return CheckOut(url=url, redirect=blocklist.should_redirect(url))


@router.get("/gate", response_model=GateOut)
def gate_state(blocklist: BlockList = Depends(get_blocklist)) -> GateOut:
    return GateOut(enabled=blocklist.enabled())


@router.put("/gate", response_model=GateOut)
def set_gate(payload: GateIn, blocklist: BlockList = Depends(get_blocklist)) -> GateOut:
    return GateOut(enabled=blocklist.set_enabled(payload.enabled))

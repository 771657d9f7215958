from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from stakeledger.api.routes_public_parts.common import _caller, _executor
from stakeledger.api.schemas import AmountRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/stake")
def stake(body: AmountRequest, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.stake(_caller(request), body.amount)}


@router.post("/claim")
def claim(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.claim(_caller(request))}


@router.post("/withdraw")
def withdraw(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.withdraw(_caller(request))}

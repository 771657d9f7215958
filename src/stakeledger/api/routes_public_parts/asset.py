from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from stakeledger.api.errors import ApiError
from stakeledger.api.routes_public_parts.common import _caller, _executor
from stakeledger.api.schemas import AmountRequest, MintRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/asset/balances/{account}")
def balance_get(account: str, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "account": account, "balance": int(ex.asset.balance_of(account))}


@router.post("/asset/approve")
def approve(body: AmountRequest, request: Request) -> Json:
    """Allow the program to pull up to `amount` from the caller."""
    ex = _executor(request)
    return {"ok": True, "receipt": ex.approve(_caller(request), body.amount)}


@router.post("/asset/mint")
def mint(body: MintRequest, request: Request) -> Json:
    cfg = request.app.state.cfg
    if not cfg.faucet_enabled:
        raise ApiError.forbidden("faucet_disabled", "minting is disabled on this deployment", {"mode": cfg.mode})
    ex = _executor(request)
    return {"ok": True, "receipt": ex.mint(body.to, body.amount)}

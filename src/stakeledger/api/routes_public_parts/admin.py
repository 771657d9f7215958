from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from stakeledger.api.routes_public_parts.common import _caller, _executor
from stakeledger.api.schemas import AdminTransferRequest, AmountRequest, RateRequest

router = APIRouter()

Json = Dict[str, Any]

# Authorization (caller == program admin) is enforced by the program itself
# so every surface shares one rule.


@router.post("/admin/rate/propose")
def rate_propose(body: RateRequest, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.propose_rate(_caller(request), body.rate)}


@router.post("/admin/rate/commit")
def rate_commit(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.commit_rate(_caller(request))}


@router.post("/admin/fund")
def fund(body: AmountRequest, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.fund(_caller(request), body.amount)}


@router.post("/admin/sweep")
def sweep(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.sweep_excess(_caller(request))}


@router.post("/admin/transfer")
def admin_transfer(body: AdminTransferRequest, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "receipt": ex.transfer_admin(_caller(request), body.new_admin)}

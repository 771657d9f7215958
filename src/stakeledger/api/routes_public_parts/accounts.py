from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from stakeledger.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/accounts/{account}")
def account_get(account: str, request: Request) -> Dict[str, Any]:
    ex = _executor(request)
    return {"ok": True, "account": account, "state": ex.account(account)}


@router.get("/accounts/{account}/pending-reward")
def account_pending_reward(account: str, request: Request) -> Dict[str, Any]:
    """Returns 0 for accounts that never staked."""
    ex = _executor(request)
    return {"ok": True, "account": account, "pending_reward": int(ex.pending_reward(account))}

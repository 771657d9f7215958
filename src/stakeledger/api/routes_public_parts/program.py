from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from stakeledger.api.routes_public_parts.common import _executor, _int_param

router = APIRouter()

Json = Dict[str, Any]


@router.get("/program")
def program_get(request: Request) -> Json:
    """Window, rates, totals and reward pool.

    Mounted under /v1 by routes_public.py, so the full path is:
      GET /v1/program
    """
    ex = _executor(request)
    view = ex.view()
    return {
        "ok": True,
        "program": view.summary(),
        "custody_balance": int(ex.custody_balance()),
        "now": int(ex.clock.now()),
    }


@router.get("/events")
def events_get(request: Request) -> Json:
    ex = _executor(request)
    limit = max(0, min(_int_param(request.query_params.get("limit"), 50), 1000))
    account = str(request.query_params.get("account") or "").strip() or None
    return {"ok": True, "events": ex.events(limit=limit, caller=account)}

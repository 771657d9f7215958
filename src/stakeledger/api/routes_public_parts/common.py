from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from stakeledger.api.errors import ApiError

Json = Dict[str, Any]

CALLER_HEADER = "x-account"


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _caller(request: Request) -> str:
    """Caller identity for the request.

    Signatures are out of scope for this service: the account is taken from
    the X-Account header as-is (deploy behind an authenticating gateway).
    """
    caller = str(request.headers.get(CALLER_HEADER) or "").strip()
    if not caller:
        raise ApiError.unauthorized("missing_caller", "X-Account header is required", {})
    return caller


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except Exception:
        return int(default)

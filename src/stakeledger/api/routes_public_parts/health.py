from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    ex = getattr(request.app.state, "executor", None)
    return {"ok": True, "ready": ex is not None}

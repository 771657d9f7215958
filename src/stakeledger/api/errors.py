from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stakeledger.runtime.errors import (
    CustodyError,
    GovernanceError,
    InputError,
    ReentrantCall,
    StakingError,
    StateError,
    Unauthorized,
    WindowError,
)
from stakeledger.runtime.executor import ExecutorError


@dataclass(eq=False)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


def status_for(e: StakingError) -> int:
    # Order matters: Unauthorized is a GovernanceError.
    if isinstance(e, Unauthorized):
        return 403
    if isinstance(e, InputError):
        return 400
    if isinstance(e, CustodyError):
        return 402
    if isinstance(e, (WindowError, StateError, GovernanceError, ReentrantCall)):
        return 409
    return 400


def _envelope(status_code: int, code: str, message: str, details: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": {"code": code, "message": message, "details": details or {}}},
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, e: ApiError) -> JSONResponse:
        return _envelope(e.status_code, e.code, e.message, e.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, e: RequestValidationError) -> JSONResponse:
        err = ApiError.bad_request("invalid_request", "request validation failed", {"errors": jsonable_encoder(e.errors())})
        return _envelope(err.status_code, err.code, err.message, err.details)

    @app.exception_handler(StakingError)
    async def _staking_error(_request: Request, e: StakingError) -> JSONResponse:
        return _envelope(status_for(e), e.code, e.reason, e.details)

    @app.exception_handler(ExecutorError)
    async def _executor_error(_request: Request, e: ExecutorError) -> JSONResponse:
        return _envelope(503, "persist_failed", str(e), {})

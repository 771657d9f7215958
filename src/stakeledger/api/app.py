from __future__ import annotations

from fastapi import FastAPI

from stakeledger.api.config import load_api_config
from stakeledger.api.errors import install_error_handlers
from stakeledger.api.routes_public import public_router
from stakeledger.api.structured_logging import RequestLogMiddleware
from stakeledger.runtime.executor import build_executor as _build_executor


def build_executor():
    """Build a StakingExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `stakeledger.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load program config + attach executor (opens SQLite)
      - False: keep lightweight; tests attach app.state.executor themselves
    """
    cfg = load_api_config()

    # Disable docs in production.
    if cfg.mode == "prod":
        app = FastAPI(title="Staking Ledger API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Staking Ledger API")

    app.state.cfg = cfg
    app.state.executor = build_executor() if boot_runtime else None

    app.add_middleware(RequestLogMiddleware)
    install_error_handlers(app)

    app.include_router(public_router)

    return app

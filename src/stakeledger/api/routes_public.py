from __future__ import annotations

from fastapi import APIRouter

from stakeledger.api.routes_public_parts.accounts import router as accounts_router
from stakeledger.api.routes_public_parts.admin import router as admin_router
from stakeledger.api.routes_public_parts.asset import router as asset_router
from stakeledger.api.routes_public_parts.health import router as health_router
from stakeledger.api.routes_public_parts.program import router as program_router
from stakeledger.api.routes_public_parts.staking import router as staking_router

public_router = APIRouter()

# Versioned API surface
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(program_router, prefix="/v1", tags=["program"])
public_router.include_router(accounts_router, prefix="/v1", tags=["accounts"])
public_router.include_router(staking_router, prefix="/v1", tags=["staking"])
public_router.include_router(admin_router, prefix="/v1", tags=["admin"])
public_router.include_router(asset_router, prefix="/v1", tags=["asset"])

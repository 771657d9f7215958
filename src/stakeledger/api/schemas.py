from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation. Domain rules (zero amounts,
rate bounds, windows) are enforced by the program and surface as
StakingError responses, not as 422s.
"""

from pydantic import BaseModel, Field


class AmountRequest(BaseModel):
    amount: int = Field(..., description="Amount in asset base units")


class RateRequest(BaseModel):
    rate: int = Field(..., description="Rate scaled by RATE_BASE (10**18 == 100%)")


class AdminTransferRequest(BaseModel):
    new_admin: str = Field(..., min_length=1, description="Account id of the next admin")


class MintRequest(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient account id")
    amount: int = Field(..., description="Amount in asset base units")

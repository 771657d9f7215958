# src/stakeledger/runtime/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass(eq=False)
class StakingError(Exception):
    """Canonical error type for every rejected staking operation.

    A raised StakingError always means the enclosing operation was aborted
    with no state change (the program restores its snapshot before the error
    leaves the public call).
    """

    code: str
    reason: str
    details: Optional[Json] = None

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


# --- categories -----------------------------------------------------------


@dataclass(eq=False)
class ConfigError(StakingError):
    """Invalid construction parameters."""


@dataclass(eq=False)
class WindowError(StakingError):
    pass


@dataclass(eq=False)
class InputError(StakingError):
    pass


@dataclass(eq=False)
class StateError(StakingError):
    pass


@dataclass(eq=False)
class GovernanceError(StakingError):
    pass


@dataclass(eq=False)
class CustodyError(StakingError):
    """Asset movement failed, or the reward pool cannot cover a payout."""


# --- concrete errors --------------------------------------------------------


class StakingWindowClosed(WindowError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("window_closed", reason, details)


class ZeroAmount(InputError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("invalid_amount", "zero_amount", details)


class NothingToClaim(StateError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("nothing_to_claim", "no_stored_reward", details)


class NothingToWithdraw(StateError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("nothing_to_withdraw", "no_principal", details)


class IdenticalRate(GovernanceError):
    def __init__(self, reason: str = "same_rates", details: Optional[Json] = None) -> None:
        super().__init__("identical_rate", reason, details)


class RateOutOfBounds(GovernanceError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("rate_out_of_bounds", reason, details)


class TimelockNotElapsed(GovernanceError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("timelock_not_elapsed", "timelock_not_passed", details)


class Unauthorized(GovernanceError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("forbidden", "admin_required", details)


class InsufficientBalance(CustodyError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("custody_failed", "insufficient_balance", details)


class InsufficientAllowance(CustodyError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("custody_failed", "insufficient_allowance", details)


class RewardPoolExhausted(CustodyError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("reward_pool_exhausted", "payout_exceeds_allocation", details)


class ReservedAccount(InputError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("invalid_caller", "program_holder", details)


class ReentrantCall(StakingError):
    def __init__(self, details: Optional[Json] = None) -> None:
        super().__init__("reentrant_call", "operation_in_progress", details)


__all__ = [
    "StakingError",
    "ConfigError",
    "WindowError",
    "InputError",
    "StateError",
    "GovernanceError",
    "CustodyError",
    "StakingWindowClosed",
    "ZeroAmount",
    "NothingToClaim",
    "NothingToWithdraw",
    "IdenticalRate",
    "RateOutOfBounds",
    "TimelockNotElapsed",
    "Unauthorized",
    "InsufficientBalance",
    "InsufficientAllowance",
    "RewardPoolExhausted",
    "ReservedAccount",
    "ReentrantCall",
]

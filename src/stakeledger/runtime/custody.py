# src/stakeledger/runtime/custody.py
from __future__ import annotations

"""Fungible-asset custody.

The staking program never touches balances directly. It talks to a
`Custody` object exposing exactly three calls:

  transfer_in(frm, amount)   pull `amount` from `frm` into the program
  transfer_out(to, amount)   push `amount` from the program to `to`
  balance_of(holder)         read any holder's balance

Any failure raises a CustodyError and MUST abort the enclosing operation.

`MemoryAsset` is an in-process token ledger with allowances (the same
approve / transfer_from model as an ERC-20). It supports receive hooks that
run after a credit, so a recipient can call back into the program while a
transfer is in flight. An exception from a hook undoes the transfer.
"""

import copy
from typing import Any, Callable, Dict, List, Protocol

from stakeledger.runtime.errors import InsufficientAllowance, InsufficientBalance, ZeroAmount

Json = Dict[str, Any]

ReceiveHook = Callable[[str, str, int], None]


class Custody(Protocol):
    def transfer_in(self, frm: str, amount: int) -> None: ...

    def transfer_out(self, to: str, amount: int) -> None: ...

    def balance_of(self, holder: str) -> int: ...


class MemoryAsset:
    def __init__(self, *, symbol: str = "WBTC", decimals: int = 8) -> None:
        self.symbol = str(symbol)
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}
        self._hooks: Dict[str, List[ReceiveHook]] = {}

    # ---- reads ----

    def balance_of(self, holder: str) -> int:
        return int(self._balances.get(holder, 0))

    def allowance(self, owner: str, spender: str) -> int:
        return int(self._allowances.get(owner, {}).get(spender, 0))

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    # ---- writes ----

    def mint(self, to: str, amount: int) -> None:
        amt = int(amount)
        if amt <= 0:
            raise ZeroAmount({"op": "mint", "amount": amt})
        self._balances[to] = self.balance_of(to) + amt

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances.setdefault(owner, {})[spender] = max(0, int(amount))

    def on_receive(self, holder: str, hook: ReceiveHook) -> None:
        """Register hook(frm, to, amount), invoked after `holder` is credited."""
        self._hooks.setdefault(holder, []).append(hook)

    def transfer(self, frm: str, to: str, amount: int) -> None:
        amt = int(amount)
        bal = self.balance_of(frm)
        if amt < 0 or bal < amt:
            raise InsufficientBalance({"holder": frm, "balance": bal, "amount": amt})

        saved = dict(self._balances)
        self._balances[frm] = bal - amt
        self._balances[to] = self.balance_of(to) + amt
        try:
            for hook in list(self._hooks.get(to, [])):
                hook(frm, to, amt)
        except Exception:
            self._balances = saved
            raise

    def transfer_from(self, spender: str, frm: str, to: str, amount: int) -> None:
        amt = int(amount)
        allowed = self.allowance(frm, spender)
        if allowed < amt:
            raise InsufficientAllowance({"owner": frm, "spender": spender, "allowance": allowed, "amount": amt})
        self.transfer(frm, to, amt)
        self._allowances.setdefault(frm, {})[spender] = allowed - amt

    # ---- JSON interop ----

    def to_json(self) -> Json:
        return {
            "symbol": self.symbol,
            "decimals": self.decimals,
            "balances": {k: int(v) for k, v in sorted(self._balances.items()) if int(v) != 0},
            "allowances": copy.deepcopy(self._allowances),
        }

    @classmethod
    def from_json(cls, j: Any) -> "MemoryAsset":
        d = j if isinstance(j, dict) else {}
        asset = cls(symbol=str(d.get("symbol") or "WBTC"), decimals=int(d.get("decimals", 8)))
        bals = d.get("balances")
        if isinstance(bals, dict):
            asset._balances = {str(k): int(v) for k, v in bals.items()}
        allow = d.get("allowances")
        if isinstance(allow, dict):
            asset._allowances = {
                str(o): {str(s): int(a) for s, a in spenders.items()}
                for o, spenders in allow.items()
                if isinstance(spenders, dict)
            }
        return asset


class AssetCustody:
    """Binds a MemoryAsset to the program's holder address."""

    def __init__(self, asset: MemoryAsset, *, holder: str) -> None:
        self.asset = asset
        self.holder = str(holder)

    def transfer_in(self, frm: str, amount: int) -> None:
        self.asset.transfer_from(self.holder, frm, self.holder, amount)

    def transfer_out(self, to: str, amount: int) -> None:
        self.asset.transfer(self.holder, to, amount)

    def balance_of(self, holder: str) -> int:
        return self.asset.balance_of(holder)


__all__ = ["Custody", "MemoryAsset", "AssetCustody", "ReceiveHook"]

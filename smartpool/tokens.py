"""In-memory fungible tokens.

- Token: an asset token whose transfer/approve calls report success as a
  boolean instead of raising, so callers must check every return value.
- PoolShareToken: the pool share ledger. Mint, burn, push and pull are
  private to the owning controller.
- safe_approve: allowance helper for tokens that reject nonzero -> nonzero
  allowance changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from smartpool.constants import MAX_UINT
from smartpool.errors import LimitError, PermissionDeniedError
from smartpool.math.bnum import badd, bsub

if TYPE_CHECKING:
    from smartpool.chain import Chain

logger = structlog.get_logger()


class Token:
    """Asset token with boolean-returning transfer semantics.

    Attributes:
        address: Token address
        name: Human-readable name
        symbol: Ticker symbol
        decimals: Display decimals (amounts are always raw integers)
    """

    def __init__(self, chain: Chain, name: str, symbol: str, decimals: int = 18) -> None:
        self.chain = chain
        self.address = chain.new_address(f"token:{symbol}")
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address})"

    # --- Journal ---

    def _snapshot(self) -> Any:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def _restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = balances
        self._allowances = allowances
        self._total_supply = total_supply

    # --- Views ---

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # --- Mutations ---

    def mint(self, to: str, amount: int) -> None:
        """Create new tokens (faucet for simulations)."""
        self.chain.touch(self)
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        if self.balance_of(sender) < amount:
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, src: str, dst: str, amount: int, *, sender: str) -> bool:
        if self.balance_of(src) < amount:
            return False
        allowance = self.allowance(src, sender)
        if sender != src and allowance < amount:
            return False
        self.chain.touch(self)
        if sender != src and allowance != MAX_UINT:
            self._allowances[(src, sender)] = allowance - amount
        self._move(src, dst, amount)
        return True

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        self.chain.touch(self)
        self._allowances[(sender, spender)] = amount
        return True

    def _move(self, src: str, dst: str, amount: int) -> None:
        self.chain.touch(self)
        self._balances[src] = self.balance_of(src) - amount
        self._balances[dst] = self.balance_of(dst) + amount


def safe_approve(token: Token, spender: str, amount: int, *, sender: str) -> bool:
    """Set sender's allowance for spender, resetting to zero first if needed.

    Returns True without calling the token when the allowance already equals
    amount. A nonzero allowance is cleared before the new one is set.
    """
    current_allowance = token.allowance(sender, spender)
    if current_allowance == amount:
        return True

    if current_allowance != 0 and not token.approve(spender, 0, sender=sender):
        return False

    return token.approve(spender, amount, sender=sender)


class PoolShareToken:
    """Pool share ledger.

    Public transfer/approve follow the usual fungible-token rules and raise
    on failure. Supply changes go through the underscore methods, which only
    the owning controller calls.
    """

    decimals = 18

    def __init__(self, chain: Chain, symbol: str, name: str) -> None:
        self.chain = chain
        self.address = chain.new_address(f"pool:{symbol}")
        self.symbol = symbol
        self.name = name
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    def _snapshot(self) -> Any:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def _restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = balances
        self._allowances = allowances
        self._total_supply = total_supply

    # --- Views ---

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # --- Public transfers ---

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        self._move(sender, to, amount)
        return True

    def transfer_from(self, src: str, dst: str, amount: int, *, sender: str) -> bool:
        allowance = self._allowances.get((src, sender), 0)
        if sender != src and amount > allowance:
            raise PermissionDeniedError("ERR_PCTOKEN_BAD_CALLER", f"allowance {allowance} < {amount}")
        self._move(src, dst, amount)
        if sender != src and allowance != MAX_UINT:
            self._allowances[(src, sender)] = bsub(allowance, amount)
        return True

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        self.chain.touch(self)
        self._allowances[(sender, spender)] = amount
        return True

    def increase_approval(self, spender: str, amount: int, *, sender: str) -> bool:
        self.chain.touch(self)
        self._allowances[(sender, spender)] = badd(self._allowances.get((sender, spender), 0), amount)
        return True

    def decrease_approval(self, spender: str, amount: int, *, sender: str) -> bool:
        self.chain.touch(self)
        old_value = self._allowances.get((sender, spender), 0)
        self._allowances[(sender, spender)] = 0 if amount > old_value else old_value - amount
        return True

    # --- Controller-only supply operations ---

    def _mint(self, amount: int) -> None:
        self.chain.touch(self)
        self._balances[self.address] = badd(self._balances.get(self.address, 0), amount)
        self._total_supply = badd(self._total_supply, amount)

    def _burn(self, amount: int) -> None:
        if self._balances.get(self.address, 0) < amount:
            raise LimitError("ERR_INSUFFICIENT_BAL", f"cannot burn {amount}")
        self.chain.touch(self)
        self._balances[self.address] -= amount
        self._total_supply = bsub(self._total_supply, amount)

    def _push(self, to: str, amount: int) -> None:
        self._move(self.address, to, amount)

    def _pull(self, src: str, amount: int) -> None:
        self._move(src, self.address, amount)

    def _move(self, src: str, dst: str, amount: int) -> None:
        if self._balances.get(src, 0) < amount:
            raise LimitError("ERR_INSUFFICIENT_BAL", f"{src} holds {self._balances.get(src, 0)} < {amount}")
        self.chain.touch(self)
        self._balances[src] = self._balances.get(src, 0) - amount
        self._balances[dst] = self._balances.get(dst, 0) + amount

"""Constant-weight AMM engine.

The controller drives the engine only through the ``Engine`` protocol.
``WeightedPool`` is the in-memory implementation: it holds the bound token
balances, their denormalized weights, the swap fee and the public-swap flag,
and prices swaps and single-asset joins/exits with the formulas in
``smartpool.math.bmath``.

Only the engine's controller may bind, rebind, unbind or change parameters.
Balance changes pull tokens from (or push tokens to) the controller, which
must have granted the engine an allowance.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from smartpool.constants import (
    ENGINE_EXIT_FEE,
    MAX_BOUND_TOKENS,
    MAX_FEE,
    MAX_IN_RATIO,
    MAX_OUT_RATIO,
    MAX_TOTAL_WEIGHT,
    MAX_WEIGHT,
    MIN_BALANCE,
    MIN_FEE,
    MIN_WEIGHT,
)
from smartpool.errors import (
    AlreadyBoundError,
    ExternalCallError,
    LimitError,
    NotBoundError,
    NotControllerError,
    PermissionDeniedError,
    PrecisionError,
    ValidationError,
)
from smartpool.math import bmath
from smartpool.math.bnum import badd, bdiv, bmul, bsub

if TYPE_CHECKING:
    from smartpool.chain import Chain
    from smartpool.tokens import Token

logger = structlog.get_logger()


class Engine(Protocol):
    """Operations the controller needs from the underlying pool engine."""

    address: str
    EXIT_FEE: int

    def bind(self, token: Token, balance: int, denorm: int, *, sender: str) -> None: ...

    def rebind(self, token: Token, balance: int, denorm: int, *, sender: str) -> None: ...

    def unbind(self, token: Token, *, sender: str) -> None: ...

    def is_bound(self, token: Token) -> bool: ...

    def get_balance(self, token: Token) -> int: ...

    def get_denormalized_weight(self, token: Token) -> int: ...

    def get_total_denormalized_weight(self) -> int: ...

    def get_current_tokens(self) -> list[Token]: ...

    def get_swap_fee(self) -> int: ...

    def set_swap_fee(self, swap_fee: int, *, sender: str) -> None: ...

    def is_public_swap(self) -> bool: ...

    def set_public_swap(self, public: bool, *, sender: str) -> None: ...

    def calc_pool_out_given_single_in(
        self,
        token_balance_in: int,
        token_weight_in: int,
        pool_supply: int,
        total_weight: int,
        token_amount_in: int,
        swap_fee: int,
    ) -> int: ...

    def calc_single_in_given_pool_out(
        self,
        token_balance_in: int,
        token_weight_in: int,
        pool_supply: int,
        total_weight: int,
        pool_amount_out: int,
        swap_fee: int,
    ) -> int: ...

    def calc_single_out_given_pool_in(
        self,
        token_balance_out: int,
        token_weight_out: int,
        pool_supply: int,
        total_weight: int,
        pool_amount_in: int,
        swap_fee: int,
    ) -> int: ...

    def calc_pool_in_given_single_out(
        self,
        token_balance_out: int,
        token_weight_out: int,
        pool_supply: int,
        total_weight: int,
        token_amount_out: int,
        swap_fee: int,
    ) -> int: ...


# Builds a fresh engine controlled by the given address
EngineFactory = Callable[["Chain", str], Engine]


@dataclass(frozen=True)
class Record:
    """Engine bookkeeping for one bound token."""

    token: Token
    index: int
    denorm: int
    balance: int


class WeightedPool:
    """In-memory constant-weight pool engine."""

    EXIT_FEE = ENGINE_EXIT_FEE

    def __init__(self, chain: Chain, controller: str) -> None:
        self.chain = chain
        self.address = chain.new_address("engine")
        self._controller = controller
        self._tokens: list[str] = []
        self._records: dict[str, Record] = {}
        self._total_weight = 0
        self._swap_fee = MIN_FEE
        self._public_swap = False

    def __repr__(self) -> str:
        return f"WeightedPool({self.address}, tokens={len(self._tokens)})"

    # --- Journal ---

    def _snapshot(self) -> Any:
        return (
            self._controller,
            list(self._tokens),
            dict(self._records),
            self._total_weight,
            self._swap_fee,
            self._public_swap,
        )

    def _restore(self, state: Any) -> None:
        (
            self._controller,
            self._tokens,
            self._records,
            self._total_weight,
            self._swap_fee,
            self._public_swap,
        ) = state

    # --- Views ---

    def get_controller(self) -> str:
        return self._controller

    def is_public_swap(self) -> bool:
        return self._public_swap

    def is_bound(self, token: Token) -> bool:
        return token.address in self._records

    def get_num_tokens(self) -> int:
        return len(self._tokens)

    def get_current_tokens(self) -> list[Token]:
        return [self._records[addr].token for addr in self._tokens]

    def get_denormalized_weight(self, token: Token) -> int:
        return self._record(token).denorm

    def get_total_denormalized_weight(self) -> int:
        return self._total_weight

    def get_normalized_weight(self, token: Token) -> int:
        return bdiv(self._record(token).denorm, self._total_weight)

    def get_balance(self, token: Token) -> int:
        return self._record(token).balance

    def get_swap_fee(self) -> int:
        return self._swap_fee

    def get_spot_price(self, token_in: Token, token_out: Token) -> int:
        rec_in = self._record(token_in)
        rec_out = self._record(token_out)
        return bmath.calc_spot_price(
            rec_in.balance, rec_in.denorm, rec_out.balance, rec_out.denorm, self._swap_fee
        )

    # --- Controller operations ---

    def set_controller(self, manager: str, *, sender: str) -> None:
        self._require_controller(sender)
        self.chain.touch(self)
        self._controller = manager

    def set_swap_fee(self, swap_fee: int, *, sender: str) -> None:
        self._require_controller(sender)
        if swap_fee < MIN_FEE:
            raise ValidationError("ERR_MIN_FEE", f"{swap_fee} < {MIN_FEE}")
        if swap_fee > MAX_FEE:
            raise ValidationError("ERR_MAX_FEE", f"{swap_fee} > {MAX_FEE}")
        self.chain.touch(self)
        self._swap_fee = swap_fee

    def set_public_swap(self, public: bool, *, sender: str) -> None:
        self._require_controller(sender)
        self.chain.touch(self)
        self._public_swap = public

    def bind(self, token: Token, balance: int, denorm: int, *, sender: str) -> None:
        self._require_controller(sender)
        if self.is_bound(token):
            raise AlreadyBoundError(detail=token.address)
        if len(self._tokens) >= MAX_BOUND_TOKENS:
            raise ValidationError("ERR_MAX_TOKENS", f"{len(self._tokens)} tokens bound")

        with self.chain.atomic():
            self.chain.touch(self)
            self._records[token.address] = Record(
                token=token, index=len(self._tokens), denorm=0, balance=0
            )
            self._tokens.append(token.address)
            self.rebind(token, balance, denorm, sender=sender)

    def rebind(self, token: Token, balance: int, denorm: int, *, sender: str) -> None:
        self._require_controller(sender)
        record = self._record(token)

        if denorm < MIN_WEIGHT:
            raise ValidationError("ERR_MIN_WEIGHT", f"{denorm} < {MIN_WEIGHT}")
        if denorm > MAX_WEIGHT:
            raise ValidationError("ERR_MAX_WEIGHT", f"{denorm} > {MAX_WEIGHT}")
        if balance < MIN_BALANCE:
            raise ValidationError("ERR_MIN_BALANCE", f"{balance} < {MIN_BALANCE}")

        total_weight = self._total_weight
        if denorm > record.denorm:
            total_weight = badd(total_weight, bsub(denorm, record.denorm))
            if total_weight > MAX_TOTAL_WEIGHT:
                raise ValidationError("ERR_MAX_TOTAL_WEIGHT", f"{total_weight} > {MAX_TOTAL_WEIGHT}")
        elif denorm < record.denorm:
            total_weight = bsub(total_weight, bsub(record.denorm, denorm))

        with self.chain.atomic():
            self.chain.touch(self)
            self._total_weight = total_weight
            self._records[token.address] = replace(record, denorm=denorm, balance=balance)

            old_balance = record.balance
            if balance > old_balance:
                self._pull_underlying(token, sender, bsub(balance, old_balance))
            elif balance < old_balance:
                self._push_underlying(token, sender, bsub(old_balance, balance))

    def unbind(self, token: Token, *, sender: str) -> None:
        self._require_controller(sender)
        record = self._record(token)

        with self.chain.atomic():
            self.chain.touch(self)
            self._total_weight = bsub(self._total_weight, record.denorm)

            # Swap the last token into the freed slot
            last = len(self._tokens) - 1
            moved = self._tokens[last]
            self._tokens[record.index] = moved
            if moved != token.address:
                self._records[moved] = replace(self._records[moved], index=record.index)
            self._tokens.pop()
            del self._records[token.address]

            self._push_underlying(token, sender, record.balance)

    # --- Public swaps ---

    def swap_exact_amount_in(
        self,
        token_in: Token,
        token_amount_in: int,
        token_out: Token,
        min_amount_out: int,
        max_price: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Swap an exact input amount. Returns (token_amount_out, spot_price_after)."""
        if not self._public_swap:
            raise PermissionDeniedError("ERR_SWAP_NOT_PUBLIC")
        rec_in = self._record(token_in)
        rec_out = self._record(token_out)

        if token_amount_in > bmul(rec_in.balance, MAX_IN_RATIO):
            raise LimitError("ERR_MAX_IN_RATIO")

        spot_price_before = bmath.calc_spot_price(
            rec_in.balance, rec_in.denorm, rec_out.balance, rec_out.denorm, self._swap_fee
        )
        if spot_price_before > max_price:
            raise LimitError("ERR_BAD_LIMIT_PRICE")

        token_amount_out = bmath.calc_out_given_in(
            rec_in.balance, rec_in.denorm, rec_out.balance, rec_out.denorm, token_amount_in, self._swap_fee
        )
        if token_amount_out < min_amount_out:
            raise LimitError("ERR_LIMIT_OUT")

        spot_price_after = self._settle_swap(
            rec_in, rec_out, token_amount_in, token_amount_out, spot_price_before, max_price, sender
        )
        return token_amount_out, spot_price_after

    def swap_exact_amount_out(
        self,
        token_in: Token,
        max_amount_in: int,
        token_out: Token,
        token_amount_out: int,
        max_price: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Swap for an exact output amount. Returns (token_amount_in, spot_price_after)."""
        if not self._public_swap:
            raise PermissionDeniedError("ERR_SWAP_NOT_PUBLIC")
        rec_in = self._record(token_in)
        rec_out = self._record(token_out)

        if token_amount_out > bmul(rec_out.balance, MAX_OUT_RATIO):
            raise LimitError("ERR_MAX_OUT_RATIO")

        spot_price_before = bmath.calc_spot_price(
            rec_in.balance, rec_in.denorm, rec_out.balance, rec_out.denorm, self._swap_fee
        )
        if spot_price_before > max_price:
            raise LimitError("ERR_BAD_LIMIT_PRICE")

        token_amount_in = bmath.calc_in_given_out(
            rec_in.balance, rec_in.denorm, rec_out.balance, rec_out.denorm, token_amount_out, self._swap_fee
        )
        if token_amount_in > max_amount_in:
            raise LimitError("ERR_LIMIT_IN")

        spot_price_after = self._settle_swap(
            rec_in, rec_out, token_amount_in, token_amount_out, spot_price_before, max_price, sender
        )
        return token_amount_in, spot_price_after

    def _settle_swap(
        self,
        rec_in: Record,
        rec_out: Record,
        token_amount_in: int,
        token_amount_out: int,
        spot_price_before: int,
        max_price: int,
        sender: str,
    ) -> int:
        """Check post-trade prices, then update balances and move the tokens."""
        new_in = badd(rec_in.balance, token_amount_in)
        new_out = bsub(rec_out.balance, token_amount_out)

        spot_price_after = bmath.calc_spot_price(
            new_in, rec_in.denorm, new_out, rec_out.denorm, self._swap_fee
        )
        if spot_price_after < spot_price_before:
            raise PrecisionError(detail="spot price decreased")
        if spot_price_after > max_price:
            raise LimitError("ERR_LIMIT_PRICE")
        if spot_price_before > bdiv(token_amount_in, token_amount_out):
            raise PrecisionError(detail="effective price below spot price")

        with self.chain.atomic():
            self.chain.touch(self)
            self._records[rec_in.token.address] = replace(rec_in, balance=new_in)
            self._records[rec_out.token.address] = replace(rec_out, balance=new_out)
            self._pull_underlying(rec_in.token, sender, token_amount_in)
            self._push_underlying(rec_out.token, sender, token_amount_out)

        logger.debug(
            "engine_swap",
            token_in=rec_in.token.address,
            token_out=rec_out.token.address,
            amount_in=token_amount_in,
            amount_out=token_amount_out,
        )
        return spot_price_after

    # --- Pricing formulas ---

    def calc_spot_price(self, *args: int) -> int:
        return bmath.calc_spot_price(*args)

    def calc_out_given_in(self, *args: int) -> int:
        return bmath.calc_out_given_in(*args)

    def calc_in_given_out(self, *args: int) -> int:
        return bmath.calc_in_given_out(*args)

    def calc_pool_out_given_single_in(self, *args: int) -> int:
        return bmath.calc_pool_out_given_single_in(*args)

    def calc_single_in_given_pool_out(self, *args: int) -> int:
        return bmath.calc_single_in_given_pool_out(*args)

    def calc_single_out_given_pool_in(self, *args: int) -> int:
        return bmath.calc_single_out_given_pool_in(*args)

    def calc_pool_in_given_single_out(self, *args: int) -> int:
        return bmath.calc_pool_in_given_single_out(*args)

    # --- Internals ---

    def _record(self, token: Token) -> Record:
        record = self._records.get(token.address)
        if record is None:
            raise NotBoundError(detail=token.address)
        return record

    def _require_controller(self, sender: str) -> None:
        if sender != self._controller:
            raise NotControllerError(detail=f"{sender} is not the engine controller")

    def _pull_underlying(self, token: Token, src: str, amount: int) -> None:
        if not token.transfer_from(src, self.address, amount, sender=self.address):
            raise ExternalCallError(detail=f"pull {amount} {token.symbol} from {src}")

    def _push_underlying(self, token: Token, dst: str, amount: int) -> None:
        if not token.transfer(dst, amount, sender=self.address):
            raise ExternalCallError(detail=f"push {amount} {token.symbol} to {dst}")

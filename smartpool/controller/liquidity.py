"""Liquidity provision: proportional and single-asset joins and exits.

Proportional joins and exits round against the caller: the share ratio is
biased by one unit of supply and every asset balance by one unit, so the
pool never under-collects on a join or over-pays on an exit.

Exit fees are charged in pool shares and sent to the configured fee
beneficiary; only the remainder is burned.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

from smartpool.constants import BONE, MAX_IN_RATIO, MAX_OUT_RATIO
from smartpool.errors import (
    LimitError,
    NotBoundError,
    NotWhitelistedError,
    PrecisionError,
    ValidationError,
)
from smartpool.events import LogExit, LogJoin
from smartpool.math.bnum import badd, bdiv, bmul, bsub

if TYPE_CHECKING:
    from smartpool.controller.pool import ConfigurableRightsPool
    from smartpool.engine import Engine
    from smartpool.tokens import Token

logger = structlog.get_logger()


@contextmanager
def public_swap_suspended(pool: ConfigurableRightsPool, engine: Engine) -> Iterator[None]:
    """Disable public swaps on the engine for the duration of the block.

    The original flag is restored on every exit path.
    """
    was_public = engine.is_public_swap()
    if was_public:
        engine.set_public_swap(False, sender=pool.address)
    try:
        yield
    finally:
        if was_public:
            engine.set_public_swap(True, sender=pool.address)


# --- Proportional ---


def join_pool(
    pool: ConfigurableRightsPool,
    engine: Engine,
    pool_amount_out: int,
    max_amounts_in: Sequence[int],
    sender: str,
) -> list[int]:
    """Deposit every asset in proportion and receive pool_amount_out shares.

        ratio        = pool_amount_out / (total_supply - 1)
        amount_in[i] = ratio * (balance[i] + 1)

    Returns:
        Amount of each asset pulled, in engine token order

    Raises:
        NotWhitelistedError: Caller may not provide liquidity
        ValidationError: max_amounts_in length differs from the token count
        PrecisionError: A ratio or amount rounds to zero
        LimitError: An amount exceeds its maximum
    """
    _require_can_provide(pool, sender)

    tokens = engine.get_current_tokens()
    if len(max_amounts_in) != len(tokens):
        raise ValidationError("ERR_AMOUNTS_MISMATCH", f"{len(max_amounts_in)} limits for {len(tokens)} tokens")

    ratio = bdiv(pool_amount_out, bsub(pool._total_supply, 1))
    if ratio == 0:
        raise PrecisionError(detail="join ratio rounds to zero")

    amounts_in = []
    for token, max_amount_in in zip(tokens, max_amounts_in, strict=True):
        amount_in = bmul(ratio, badd(engine.get_balance(token), 1))
        if amount_in == 0:
            raise PrecisionError(detail=f"{token.symbol} amount rounds to zero")
        if amount_in > max_amount_in:
            raise LimitError("ERR_LIMIT_IN", f"{token.symbol}: {amount_in} > {max_amount_in}")
        amounts_in.append(amount_in)

    with public_swap_suspended(pool, engine):
        for token, amount_in in zip(tokens, amounts_in, strict=True):
            pool._emit(LogJoin(caller=sender, token_in=token.address, token_amount_in=amount_in))
            pool._pull_underlying(engine, token, sender, amount_in)

        pool._mint_pool_share(pool_amount_out)
        pool._push_pool_share(sender, pool_amount_out)

    logger.info("pool_joined", caller=sender, pool_amount_out=pool_amount_out, amounts_in=amounts_in)
    return amounts_in


def exit_pool(
    pool: ConfigurableRightsPool,
    engine: Engine,
    pool_amount_in: int,
    min_amounts_out: Sequence[int],
    sender: str,
) -> list[int]:
    """Redeem pool_amount_in shares for a proportional amount of every asset.

        fee           = pool_amount_in * exit_fee
        ratio         = (pool_amount_in - fee) / (total_supply + 1)
        amount_out[i] = ratio * (balance[i] - 1)

    Returns:
        Amount of each asset pushed, in engine token order

    Raises:
        ValidationError: min_amounts_out length differs, or the engine charges an exit fee
        PrecisionError: A ratio or amount rounds to zero
        LimitError: An amount is below its minimum
    """
    _require_engine_exit_fee_zero(engine)

    tokens = engine.get_current_tokens()
    if len(min_amounts_out) != len(tokens):
        raise ValidationError("ERR_AMOUNTS_MISMATCH", f"{len(min_amounts_out)} limits for {len(tokens)} tokens")

    exit_fee = bmul(pool_amount_in, pool.config.exit_fee)
    net_pool_amount_in = bsub(pool_amount_in, exit_fee)
    ratio = bdiv(net_pool_amount_in, badd(pool._total_supply, 1))
    if ratio == 0:
        raise PrecisionError(detail="exit ratio rounds to zero")

    amounts_out = []
    for token, min_amount_out in zip(tokens, min_amounts_out, strict=True):
        amount_out = bmul(ratio, bsub(engine.get_balance(token), 1))
        if amount_out == 0:
            raise PrecisionError(detail=f"{token.symbol} amount rounds to zero")
        if amount_out < min_amount_out:
            raise LimitError("ERR_LIMIT_OUT", f"{token.symbol}: {amount_out} < {min_amount_out}")
        amounts_out.append(amount_out)

    with public_swap_suspended(pool, engine):
        _redeem_pool_shares(pool, sender, pool_amount_in, exit_fee)
        for token, amount_out in zip(tokens, amounts_out, strict=True):
            pool._emit(LogExit(caller=sender, token_out=token.address, token_amount_out=amount_out))
            pool._push_underlying(engine, token, sender, amount_out)

    logger.info(
        "pool_exited",
        caller=sender,
        pool_amount_in=pool_amount_in,
        exit_fee=exit_fee,
        amounts_out=amounts_out,
    )
    return amounts_out


# --- Single asset ---


def joinswap_extern_amount_in(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token_in: Token,
    token_amount_in: int,
    min_pool_amount_out: int,
    sender: str,
) -> int:
    """Deposit an exact amount of one asset; return the shares minted."""
    _require_can_provide(pool, sender)
    _require_bound(engine, token_in)

    balance = engine.get_balance(token_in)
    if token_amount_in > bmul(balance, MAX_IN_RATIO):
        raise LimitError("ERR_MAX_IN_RATIO", f"{token_amount_in} exceeds half of {balance}")

    pool_amount_out = engine.calc_pool_out_given_single_in(
        balance,
        engine.get_denormalized_weight(token_in),
        pool._total_supply,
        engine.get_total_denormalized_weight(),
        token_amount_in,
        engine.get_swap_fee(),
    )
    if pool_amount_out == 0:
        raise PrecisionError(detail="pool amount out rounds to zero")
    if pool_amount_out < min_pool_amount_out:
        raise LimitError("ERR_LIMIT_OUT", f"{pool_amount_out} < {min_pool_amount_out}")

    pool._emit(LogJoin(caller=sender, token_in=token_in.address, token_amount_in=token_amount_in))
    pool._pull_underlying(engine, token_in, sender, token_amount_in)
    pool._mint_pool_share(pool_amount_out)
    pool._push_pool_share(sender, pool_amount_out)

    logger.info(
        "pool_joined_single",
        caller=sender,
        token=token_in.address,
        token_amount_in=token_amount_in,
        pool_amount_out=pool_amount_out,
    )
    return pool_amount_out


def joinswap_pool_amount_out(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token_in: Token,
    pool_amount_out: int,
    max_amount_in: int,
    sender: str,
) -> int:
    """Mint an exact number of shares for one asset; return the amount pulled."""
    _require_can_provide(pool, sender)
    _require_bound(engine, token_in)

    balance = engine.get_balance(token_in)
    token_amount_in = engine.calc_single_in_given_pool_out(
        balance,
        engine.get_denormalized_weight(token_in),
        pool._total_supply,
        engine.get_total_denormalized_weight(),
        pool_amount_out,
        engine.get_swap_fee(),
    )
    if token_amount_in == 0:
        raise PrecisionError(detail="token amount in rounds to zero")
    if token_amount_in > max_amount_in:
        raise LimitError("ERR_LIMIT_IN", f"{token_amount_in} > {max_amount_in}")
    if token_amount_in > bmul(balance, MAX_IN_RATIO):
        raise LimitError("ERR_MAX_IN_RATIO", f"{token_amount_in} exceeds half of {balance}")

    pool._emit(LogJoin(caller=sender, token_in=token_in.address, token_amount_in=token_amount_in))
    pool._pull_underlying(engine, token_in, sender, token_amount_in)
    pool._mint_pool_share(pool_amount_out)
    pool._push_pool_share(sender, pool_amount_out)

    logger.info(
        "pool_joined_single",
        caller=sender,
        token=token_in.address,
        token_amount_in=token_amount_in,
        pool_amount_out=pool_amount_out,
    )
    return token_amount_in


def exitswap_pool_amount_in(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token_out: Token,
    pool_amount_in: int,
    min_amount_out: int,
    sender: str,
) -> int:
    """Redeem an exact number of shares for one asset; return the amount pushed.

    The exit fee is taken from pool_amount_in first; only the net shares are
    priced.
    """
    _require_engine_exit_fee_zero(engine)
    _require_bound(engine, token_out)

    exit_fee = bmul(pool_amount_in, pool.config.exit_fee)
    net_pool_amount_in = bsub(pool_amount_in, exit_fee)

    balance = engine.get_balance(token_out)
    token_amount_out = engine.calc_single_out_given_pool_in(
        balance,
        engine.get_denormalized_weight(token_out),
        pool._total_supply,
        engine.get_total_denormalized_weight(),
        net_pool_amount_in,
        engine.get_swap_fee(),
    )
    if token_amount_out == 0:
        raise PrecisionError(detail="token amount out rounds to zero")
    if token_amount_out < min_amount_out:
        raise LimitError("ERR_LIMIT_OUT", f"{token_amount_out} < {min_amount_out}")
    if token_amount_out > bmul(balance, MAX_OUT_RATIO):
        raise LimitError("ERR_MAX_OUT_RATIO", f"{token_amount_out} exceeds a third of {balance}")

    pool._emit(LogExit(caller=sender, token_out=token_out.address, token_amount_out=token_amount_out))
    _redeem_pool_shares(pool, sender, pool_amount_in, exit_fee)
    pool._push_underlying(engine, token_out, sender, token_amount_out)

    logger.info(
        "pool_exited_single",
        caller=sender,
        token=token_out.address,
        pool_amount_in=pool_amount_in,
        exit_fee=exit_fee,
        token_amount_out=token_amount_out,
    )
    return token_amount_out


def exitswap_extern_amount_out(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token_out: Token,
    token_amount_out: int,
    max_pool_amount_in: int,
    sender: str,
) -> int:
    """Withdraw an exact amount of one asset; return the shares redeemed.

    The returned amount includes the exit fee, grossed up so that the net
    shares burned cover the priced withdrawal:

        pool_amount_in = net / (1 - exit_fee)
    """
    _require_engine_exit_fee_zero(engine)
    _require_bound(engine, token_out)

    balance = engine.get_balance(token_out)
    if token_amount_out > bmul(balance, MAX_OUT_RATIO):
        raise LimitError("ERR_MAX_OUT_RATIO", f"{token_amount_out} exceeds a third of {balance}")

    net_pool_amount_in = engine.calc_pool_in_given_single_out(
        balance,
        engine.get_denormalized_weight(token_out),
        pool._total_supply,
        engine.get_total_denormalized_weight(),
        token_amount_out,
        engine.get_swap_fee(),
    )
    pool_amount_in = bdiv(net_pool_amount_in, bsub(BONE, pool.config.exit_fee))
    if pool_amount_in == 0:
        raise PrecisionError(detail="pool amount in rounds to zero")
    if pool_amount_in > max_pool_amount_in:
        raise LimitError("ERR_LIMIT_IN", f"{pool_amount_in} > {max_pool_amount_in}")

    exit_fee = bsub(pool_amount_in, net_pool_amount_in)

    pool._emit(LogExit(caller=sender, token_out=token_out.address, token_amount_out=token_amount_out))
    _redeem_pool_shares(pool, sender, pool_amount_in, exit_fee)
    pool._push_underlying(engine, token_out, sender, token_amount_out)

    logger.info(
        "pool_exited_single",
        caller=sender,
        token=token_out.address,
        pool_amount_in=pool_amount_in,
        exit_fee=exit_fee,
        token_amount_out=token_amount_out,
    )
    return pool_amount_in


# --- Helpers ---


def _redeem_pool_shares(pool: ConfigurableRightsPool, sender: str, pool_amount_in: int, exit_fee: int) -> None:
    pool._pull_pool_share(sender, pool_amount_in)
    if exit_fee > 0:
        pool._push_pool_share(pool.config.fee_beneficiary, exit_fee)
    pool._burn_pool_share(bsub(pool_amount_in, exit_fee))


def _require_can_provide(pool: ConfigurableRightsPool, sender: str) -> None:
    if not pool._can_provide_liquidity(sender):
        raise NotWhitelistedError(detail=sender)


def _require_bound(engine: Engine, token: Token) -> None:
    if not engine.is_bound(token):
        raise NotBoundError(detail=token.address)


def _require_engine_exit_fee_zero(engine: Engine) -> None:
    if engine.EXIT_FEE != 0:
        raise ValidationError("ERR_NONZERO_EXIT_FEE", f"engine exit fee {engine.EXIT_FEE}")

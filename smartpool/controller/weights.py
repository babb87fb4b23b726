"""Weight management: immediate single-token reweighing and gradual updates.

Immediate updates keep the token's price unchanged by moving balance in
proportion to the weight change and minting or burning pool shares in
proportion to the change in total weight:

    shares  = total_supply * delta_weight / total_weight
    balance = token_balance * delta_weight / token_weight

Gradual updates interpolate every token's weight linearly between two blocks.
Balances never move during a poke; only price exposure shifts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from smartpool.constants import MAX_TOTAL_WEIGHT, MAX_WEIGHT, MIN_BALANCE, MIN_WEIGHT
from smartpool.errors import PrecisionError, ValidationError
from smartpool.math.bnum import badd, bdiv, bmul, bsub

if TYPE_CHECKING:
    from smartpool.controller.pool import ConfigurableRightsPool
    from smartpool.engine import Engine
    from smartpool.tokens import Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class GradualUpdate:
    """An active weight ramp.

    Attributes:
        start_block: First block of the ramp (never before the block it was scheduled in)
        end_block: Block at which end_weights are reached
        tokens: Tokens the ramp applies to, in engine order when scheduled
        start_weights: Weights when the ramp was scheduled (parallel to tokens)
        end_weights: Target weights (parallel to tokens)
    """

    start_block: int
    end_block: int
    tokens: tuple[Token, ...]
    start_weights: tuple[int, ...]
    end_weights: tuple[int, ...]


def update_weight(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token: Token,
    new_weight: int,
    sender: str,
) -> None:
    """Change one token's weight immediately, keeping its price constant.

    Decreasing a weight returns the freed balance to the caller and burns the
    caller's pool shares; increasing it pulls balance from the caller and
    mints shares. Setting the current weight is a no-op.

    Raises:
        ValidationError: Weight out of range, total weight above max, or
            balance would drop below MIN_BALANCE
        NotBoundError: If token is not bound
        PrecisionError: If the share or balance delta rounds to zero
    """
    if new_weight < MIN_WEIGHT:
        raise ValidationError("ERR_MIN_WEIGHT", f"{new_weight} < {MIN_WEIGHT}")
    if new_weight > MAX_WEIGHT:
        raise ValidationError("ERR_MAX_WEIGHT", f"{new_weight} > {MAX_WEIGHT}")

    current_weight = engine.get_denormalized_weight(token)
    if new_weight == current_weight:
        logger.debug("update_weight_noop", token=token.address, weight=new_weight)
        return

    current_balance = engine.get_balance(token)
    total_supply = pool._total_supply
    total_weight = engine.get_total_denormalized_weight()

    if new_weight < current_weight:
        delta_weight = bsub(current_weight, new_weight)
        pool_shares = bmul(total_supply, bdiv(delta_weight, total_weight))
        delta_balance = bmul(current_balance, bdiv(delta_weight, current_weight))
        _require_nonzero(pool_shares, delta_balance)

        new_balance = bsub(current_balance, delta_balance)
        if new_balance < MIN_BALANCE:
            raise ValidationError("ERR_MIN_BALANCE", f"{new_balance} < {MIN_BALANCE}")

        engine.rebind(token, new_balance, new_weight, sender=pool.address)
        pool._push_token(token, sender, delta_balance)
        pool._pull_pool_share(sender, pool_shares)
        pool._burn_pool_share(pool_shares)
    else:
        delta_weight = bsub(new_weight, current_weight)
        if badd(total_weight, delta_weight) > MAX_TOTAL_WEIGHT:
            raise ValidationError(
                "ERR_MAX_TOTAL_WEIGHT", f"{badd(total_weight, delta_weight)} > {MAX_TOTAL_WEIGHT}"
            )

        pool_shares = bmul(total_supply, bdiv(delta_weight, total_weight))
        delta_balance = bmul(current_balance, bdiv(delta_weight, current_weight))
        _require_nonzero(pool_shares, delta_balance)

        pool._pull_token(token, sender, delta_balance)
        engine.rebind(token, badd(current_balance, delta_balance), new_weight, sender=pool.address)
        pool._mint_pool_share(pool_shares)
        pool._push_pool_share(sender, pool_shares)

    logger.info(
        "weight_updated",
        token=token.address,
        old_weight=current_weight,
        new_weight=new_weight,
        pool_shares=pool_shares,
        delta_balance=delta_balance,
    )


def _require_nonzero(pool_shares: int, delta_balance: int) -> None:
    if pool_shares == 0 or delta_balance == 0:
        raise PrecisionError(detail=f"shares={pool_shares} balance={delta_balance}")


def schedule_gradual_update(
    engine: Engine,
    new_weights: Sequence[int],
    start_block: int,
    end_block: int,
    current_block: int,
    minimum_period: int,
) -> GradualUpdate:
    """Validate and build a weight ramp starting no earlier than current_block.

    Raises:
        ValidationError: Ramp ends in the past or is too short, wrong number
            of weights, a weight out of range, or target total weight too high
    """
    if current_block >= end_block:
        raise ValidationError(
            "ERR_GRADUAL_UPDATE_TIME_TRAVEL", f"end block {end_block} <= current block {current_block}"
        )

    effective_start = max(start_block, current_block)
    if end_block <= effective_start or end_block - effective_start < minimum_period:
        raise ValidationError(
            "ERR_WEIGHT_CHANGE_TIME_BELOW_MIN",
            f"period {end_block - effective_start} < {minimum_period}",
        )

    tokens = tuple(engine.get_current_tokens())
    if len(new_weights) != len(tokens):
        raise ValidationError(
            "ERR_START_WEIGHTS_MISMATCH", f"{len(new_weights)} weights for {len(tokens)} tokens"
        )

    weights_sum = 0
    for weight in new_weights:
        if weight > MAX_WEIGHT:
            raise ValidationError("ERR_WEIGHT_ABOVE_MAX", f"{weight} > {MAX_WEIGHT}")
        if weight < MIN_WEIGHT:
            raise ValidationError("ERR_WEIGHT_BELOW_MIN", f"{weight} < {MIN_WEIGHT}")
        weights_sum = badd(weights_sum, weight)

    if weights_sum > MAX_TOTAL_WEIGHT:
        raise ValidationError("ERR_MAX_TOTAL_WEIGHT", f"{weights_sum} > {MAX_TOTAL_WEIGHT}")

    return GradualUpdate(
        start_block=effective_start,
        end_block=end_block,
        tokens=tokens,
        start_weights=tuple(engine.get_denormalized_weight(token) for token in tokens),
        end_weights=tuple(new_weights),
    )


def poke_weights(
    pool: ConfigurableRightsPool,
    engine: Engine,
    plan: GradualUpdate,
    current_block: int,
) -> GradualUpdate | None:
    """Move every ramping weight to its interpolated value for current_block.

    Decreases round up and increases round down, so the summed weight never
    exceeds the exact interpolated total. Decreasing weights are rebound first.

    Returns:
        The plan if it is still running, or None once end_block is reached
    """
    if current_block < plan.start_block:
        logger.debug("poke_weights_not_started", start_block=plan.start_block, block=current_block)
        return plan

    effective_block = min(current_block, plan.end_block)
    block_period = bsub(plan.end_block, plan.start_block)
    blocks_elapsed = bsub(effective_block, plan.start_block)

    ramps = sorted(
        zip(plan.tokens, plan.start_weights, plan.end_weights, strict=True),
        key=lambda ramp: ramp[2] > ramp[1],
    )
    for token, start_weight, end_weight in ramps:
        if start_weight == end_weight:
            continue

        if effective_block == plan.end_block:
            new_weight = end_weight
        elif start_weight > end_weight:
            step = _div_up(bsub(start_weight, end_weight) * blocks_elapsed, block_period)
            new_weight = bsub(start_weight, step)
        else:
            step = bsub(end_weight, start_weight) * blocks_elapsed // block_period
            new_weight = badd(start_weight, step)

        engine.rebind(token, engine.get_balance(token), new_weight, sender=pool.address)

    logger.debug(
        "weights_poked",
        block=current_block,
        elapsed=blocks_elapsed,
        period=block_period,
    )

    if current_block >= plan.end_block:
        logger.info("gradual_update_finished", end_block=plan.end_block)
        return None
    return plan


def _div_up(a: int, b: int) -> int:
    return -(-a // b)

"""Adding and removing pool tokens.

Adding is a two-step protocol: commit the token, balance and weight, then
apply it once the add-token timelock has elapsed. Removal is immediate.
Both dilute or concentrate pool shares in proportion to the token's weight.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import structlog

from smartpool.constants import (
    MAX_ASSET_LIMIT,
    MAX_TOTAL_WEIGHT,
    MAX_UINT,
    MAX_WEIGHT,
    MIN_ASSET_LIMIT,
    MIN_BALANCE,
    MIN_WEIGHT,
)
from smartpool.errors import (
    AlreadyBoundError,
    ExternalCallError,
    NonConformingTokenError,
    NotBoundError,
    PhaseError,
    PrecisionError,
    TimelockError,
    ValidationError,
)
from smartpool.math.bnum import badd, bdiv, bmul, bsub
from smartpool.tokens import safe_approve

if TYPE_CHECKING:
    from smartpool.controller.pool import ConfigurableRightsPool
    from smartpool.engine import Engine
    from smartpool.tokens import Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class NewTokenParams:
    """The most recent token add commitment.

    Attributes:
        token: Token to bind
        balance: Balance pulled from the owner when applied
        denorm: Denormalized weight to bind at
        commit_block: Block of the commit
        is_committed: True until the add is applied
    """

    token: Token
    balance: int
    denorm: int
    commit_block: int
    is_committed: bool = True


def verify_token_compliance(pool: ConfigurableRightsPool, token: Token, sender: str) -> None:
    """Probe a token with a zero-value transfer that must report success.

    Raises:
        NonConformingTokenError: If the transfer returns False
    """
    if not token.transfer(sender, 0, sender=pool.address):
        raise NonConformingTokenError(detail=token.address)


def commit_add_token(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token: Token,
    balance: int,
    denormalized_weight: int,
    current_block: int,
    sender: str,
) -> NewTokenParams:
    """Validate a token add and record it for apply_add_token.

    Raises:
        NonConformingTokenError: Token fails the compliance probe
        AlreadyBoundError: Token already bound
        ValidationError: Weight, total weight, balance or token count out of range
    """
    verify_token_compliance(pool, token, sender)

    if engine.is_bound(token):
        raise AlreadyBoundError(detail=token.address)
    if denormalized_weight > MAX_WEIGHT:
        raise ValidationError("ERR_WEIGHT_ABOVE_MAX", f"{denormalized_weight} > {MAX_WEIGHT}")
    if denormalized_weight < MIN_WEIGHT:
        raise ValidationError("ERR_WEIGHT_BELOW_MIN", f"{denormalized_weight} < {MIN_WEIGHT}")

    total_weight = badd(engine.get_total_denormalized_weight(), denormalized_weight)
    if total_weight > MAX_TOTAL_WEIGHT:
        raise ValidationError("ERR_MAX_TOTAL_WEIGHT", f"{total_weight} > {MAX_TOTAL_WEIGHT}")
    if balance < MIN_BALANCE:
        raise ValidationError("ERR_BALANCE_BELOW_MIN", f"{balance} < {MIN_BALANCE}")
    if len(engine.get_current_tokens()) >= MAX_ASSET_LIMIT:
        raise ValidationError("ERR_TOO_MANY_TOKENS", f"pool already holds {MAX_ASSET_LIMIT} tokens")

    logger.info(
        "token_add_committed",
        token=token.address,
        balance=balance,
        denorm=denormalized_weight,
        commit_block=current_block,
    )
    return NewTokenParams(
        token=token,
        balance=balance,
        denorm=denormalized_weight,
        commit_block=current_block,
    )


def apply_add_token(
    pool: ConfigurableRightsPool,
    engine: Engine,
    new_token: NewTokenParams | None,
    timelock: int,
    current_block: int,
    sender: str,
) -> tuple[NewTokenParams, int]:
    """Bind the committed token and mint shares proportional to its weight.

    The commitment is marked applied before any token moves. Shares are
    computed against the total weight before the new token is bound:

        shares = total_supply * denorm / total_weight

    Returns:
        (the applied commitment, pool shares minted to the caller)

    Raises:
        PhaseError: No pending commitment
        TimelockError: Fewer than timelock blocks since the commit
    """
    if new_token is None or not new_token.is_committed:
        raise PhaseError("ERR_NO_TOKEN_COMMIT", "no token add has been committed")
    elapsed = bsub(current_block, new_token.commit_block)
    if elapsed < timelock:
        raise TimelockError(detail=f"{elapsed} of {timelock} blocks elapsed")

    total_supply = pool._total_supply
    pool_shares = bdiv(bmul(total_supply, new_token.denorm), engine.get_total_denormalized_weight())
    if pool_shares == 0:
        raise PrecisionError(detail="token add would mint zero shares")

    applied = replace(new_token, is_committed=False)
    pool._set_new_token(applied)

    token = new_token.token
    pool._pull_token(token, pool._owner, new_token.balance)
    if not safe_approve(token, engine.address, MAX_UINT, sender=pool.address):
        raise ExternalCallError(detail=f"approve {token.symbol} for engine")
    engine.bind(token, new_token.balance, new_token.denorm, sender=pool.address)

    pool._mint_pool_share(pool_shares)
    pool._push_pool_share(sender, pool_shares)

    logger.info(
        "token_added",
        token=token.address,
        balance=new_token.balance,
        denorm=new_token.denorm,
        pool_shares=pool_shares,
    )
    return applied, pool_shares


def remove_token(
    pool: ConfigurableRightsPool,
    engine: Engine,
    token: Token,
    sender: str,
) -> int:
    """Unbind a token, return its balance to the owner and burn the owner's shares.

        shares = total_supply * token_weight / total_weight

    Returns:
        Pool shares burned

    Raises:
        NotBoundError: Token not bound
        ValidationError: Removal would leave fewer than MIN_ASSET_LIMIT tokens
    """
    if not engine.is_bound(token):
        raise NotBoundError(detail=token.address)
    remaining = len(engine.get_current_tokens()) - 1
    if remaining < MIN_ASSET_LIMIT:
        raise ValidationError("ERR_TOO_FEW_TOKENS", f"{remaining} < {MIN_ASSET_LIMIT}")

    total_supply = pool._total_supply
    pool_shares = bdiv(
        bmul(total_supply, engine.get_denormalized_weight(token)),
        engine.get_total_denormalized_weight(),
    )
    balance = engine.get_balance(token)

    owner = pool._owner
    engine.unbind(token, sender=pool.address)
    pool._push_token(token, owner, balance)

    pool._pull_pool_share(owner, pool_shares)
    pool._burn_pool_share(pool_shares)

    logger.info("token_removed", token=token.address, balance=balance, pool_shares=pool_shares)
    return pool_shares

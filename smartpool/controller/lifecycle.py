"""Pool lifecycle: Uninitialized (staged parameters) -> Active (live engine).

The phase is an explicit tagged union. Operations that need the engine
call ``require_engine``; there is no null-engine sentinel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from smartpool.constants import MAX_POOL_SUPPLY, MAX_UINT, MIN_POOL_SUPPLY
from smartpool.errors import AlreadyCreatedError, ExternalCallError, NotCreatedError, ValidationError
from smartpool.tokens import safe_approve

if TYPE_CHECKING:
    from smartpool.controller.pool import ConfigurableRightsPool
    from smartpool.engine import Engine
    from smartpool.tokens import Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class Uninitialized:
    """No engine yet; holds the assets and fee to apply at creation."""

    tokens: tuple[Token, ...]
    balances: tuple[int, ...]
    weights: tuple[int, ...]
    swap_fee: int


@dataclass(frozen=True)
class Active:
    """Engine created and bound to the initial assets."""

    engine: Engine


PoolPhase = Uninitialized | Active


def require_engine(phase: PoolPhase) -> Engine:
    """Return the engine of an active pool.

    Raises:
        NotCreatedError: If the pool has not been created
    """
    if isinstance(phase, Active):
        return phase.engine
    raise NotCreatedError(detail="pool has not been created")


def create_pool(pool: ConfigurableRightsPool, initial_supply: int, sender: str) -> Active:
    """Create the engine, bind the staged assets and mint the initial supply.

    Shares are minted and pushed to the creator before any asset is pulled.
    Each staged asset is pulled from the creator into the controller,
    approved for the engine and bound at its configured weight.

    Returns:
        The new Active phase (the caller stores it)

    Raises:
        AlreadyCreatedError: If the pool was already created
        ValidationError: If initial_supply is out of range or the engine charges an exit fee
        ExternalCallError: If a transfer or approval fails
    """
    phase = pool._phase
    if not isinstance(phase, Uninitialized):
        raise AlreadyCreatedError(detail="pool already created")
    if initial_supply < MIN_POOL_SUPPLY:
        raise ValidationError("ERR_INIT_SUPPLY_MIN", f"{initial_supply} < {MIN_POOL_SUPPLY}")
    if initial_supply > MAX_POOL_SUPPLY:
        raise ValidationError("ERR_INIT_SUPPLY_MAX", f"{initial_supply} > {MAX_POOL_SUPPLY}")

    # Pin the cap so there is no unbounded window before an explicit set_cap
    if pool.rights.can_change_cap:
        pool._set_cap_value(initial_supply)

    pool._mint_pool_share(initial_supply)
    pool._push_pool_share(sender, initial_supply)

    engine = pool._engine_factory(pool.chain, pool.address)
    if engine.EXIT_FEE != 0:
        raise ValidationError("ERR_NONZERO_EXIT_FEE", f"engine exit fee {engine.EXIT_FEE}")

    for token, balance, weight in zip(phase.tokens, phase.balances, phase.weights, strict=True):
        pool._pull_token(token, sender, balance)
        if not safe_approve(token, engine.address, MAX_UINT, sender=pool.address):
            raise ExternalCallError(detail=f"approve {token.symbol} for engine")
        engine.bind(token, balance, weight, sender=pool.address)

    engine.set_swap_fee(phase.swap_fee, sender=pool.address)
    engine.set_public_swap(True, sender=pool.address)

    logger.info(
        "pool_created",
        pool=pool.address,
        engine=engine.address,
        initial_supply=initial_supply,
        tokens=[token.address for token in phase.tokens],
        swap_fee=phase.swap_fee,
    )
    return Active(engine=engine)

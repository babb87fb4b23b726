"""Test helpers module for shared test utilities.

- constants: common amounts, weights and fees
- factories: token, pool and misbehaving collaborator factories
"""

from tests.helpers.constants import (
    INITIAL_BALANCE,
    INITIAL_SUPPLY,
    INITIAL_WEIGHT,
    SWAP_FEE,
    WALLET_BALANCE,
)
from tests.helpers.factories import (
    FalseReturningToken,
    HookedToken,
    make_created_pool,
    make_pool,
    make_token,
)

__all__ = [
    # Constants
    "INITIAL_BALANCE",
    "INITIAL_SUPPLY",
    "INITIAL_WEIGHT",
    "SWAP_FEE",
    "WALLET_BALANCE",
    # Factories
    "make_token",
    "make_pool",
    "make_created_pool",
    "FalseReturningToken",
    "HookedToken",
]

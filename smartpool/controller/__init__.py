"""Smart pool controller.

- guard: reentrancy latch and entry point wrappers
- lifecycle: Uninitialized -> Active phase and pool creation
- weights: immediate and gradual weight changes
- token_set: commit/apply token adds and token removal
- liquidity: proportional and single-asset joins and exits
- pool: ConfigurableRightsPool, which ties the above together
"""

from smartpool.controller.lifecycle import Active, PoolPhase, Uninitialized
from smartpool.controller.pool import ConfigurableRightsPool, PoolSnapshot, TokenState
from smartpool.controller.token_set import NewTokenParams
from smartpool.controller.weights import GradualUpdate

__all__ = [
    "ConfigurableRightsPool",
    "PoolSnapshot",
    "TokenState",
    "PoolPhase",
    "Uninitialized",
    "Active",
    "GradualUpdate",
    "NewTokenParams",
]

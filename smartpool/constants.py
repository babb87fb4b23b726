"""Protocol constants for the smart pool controller and its engine.

All weights, balances, fees and ratios are 18-decimal fixed-point integers.
"""

from smartpool.models.types import is_valid_address

BONE = 10**18

MAX_UINT = 2**256 - 1

# =============================================================================
# Controller limits
# =============================================================================

MIN_WEIGHT = BONE
MAX_WEIGHT = BONE * 50
MAX_TOTAL_WEIGHT = BONE * 50

MIN_BALANCE = BONE // 10**6

MIN_POOL_SUPPLY = BONE * 100
MAX_POOL_SUPPLY = BONE * 10**9

MIN_FEE = BONE // 10**6
MAX_FEE = BONE // 10

# Exit fee collected by the controller (pool shares routed to the beneficiary)
EXIT_FEE = 0

MAX_IN_RATIO = BONE // 2
MAX_OUT_RATIO = (BONE // 3) + 1

MIN_ASSET_LIMIT = 2
MAX_ASSET_LIMIT = 8

DEFAULT_MIN_WEIGHT_CHANGE_BLOCK_PERIOD = 90
DEFAULT_ADD_TOKEN_TIME_LOCK_IN_BLOCKS = 90

# =============================================================================
# Engine limits (constant-weight pool)
# =============================================================================

MAX_BOUND_TOKENS = 8

MIN_BPOW_BASE = 1
MAX_BPOW_BASE = (2 * BONE) - 1
BPOW_PRECISION = BONE // 10**10

# Engine-side exit fee; the controller refuses to run on an engine where this is nonzero
ENGINE_EXIT_FEE = 0


def _validate_address(name: str, address: str) -> str:
    """Validate and return a well-known address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Default recipient of controller exit fees when no beneficiary is configured
DEFAULT_FEE_BENEFICIARY = _validate_address(
    "DEFAULT_FEE_BENEFICIARY", "0x000000000000000000000000000000000000fee0"
)

"""Controller configuration."""

from dataclasses import dataclass

from smartpool.constants import (
    BONE,
    DEFAULT_ADD_TOKEN_TIME_LOCK_IN_BLOCKS,
    DEFAULT_FEE_BENEFICIARY,
    DEFAULT_MIN_WEIGHT_CHANGE_BLOCK_PERIOD,
    EXIT_FEE,
)
from smartpool.errors import ValidationError
from smartpool.models.types import is_valid_address


@dataclass(frozen=True)
class ControllerConfig:
    """Tunable controller parameters.

    The timelock values are the defaults in force until create_pool is called
    with explicit values.

    Attributes:
        minimum_weight_change_block_period: Shortest allowed gradual update, in blocks
        add_token_time_lock_in_blocks: Blocks between commit_add_token and apply_add_token
        exit_fee: Fraction of redeemed shares routed to fee_beneficiary, in [0, BONE)
        fee_beneficiary: Address receiving exit fee shares
    """

    minimum_weight_change_block_period: int = DEFAULT_MIN_WEIGHT_CHANGE_BLOCK_PERIOD
    add_token_time_lock_in_blocks: int = DEFAULT_ADD_TOKEN_TIME_LOCK_IN_BLOCKS

    exit_fee: int = EXIT_FEE
    fee_beneficiary: str = DEFAULT_FEE_BENEFICIARY

    def __post_init__(self) -> None:
        if not 0 <= self.exit_fee < BONE:
            raise ValidationError("ERR_INVALID_EXIT_FEE", f"{self.exit_fee} not in [0, {BONE})")
        if not is_valid_address(self.fee_beneficiary):
            raise ValidationError("ERR_INVALID_ADDRESS", self.fee_beneficiary)
        if self.minimum_weight_change_block_period < self.add_token_time_lock_in_blocks:
            raise ValidationError(
                "ERR_INCONSISTENT_TOKEN_TIME_LOCK",
                f"{self.minimum_weight_change_block_period} < {self.add_token_time_lock_in_blocks}",
            )


# Default configuration instance
DEFAULT_CONTROLLER_CONFIG = ControllerConfig()

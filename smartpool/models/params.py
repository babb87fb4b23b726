"""Construction parameters for a configurable rights pool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from smartpool.constants import MAX_ASSET_LIMIT, MAX_FEE, MIN_ASSET_LIMIT, MIN_FEE
from smartpool.errors import ValidationError

if TYPE_CHECKING:
    from smartpool.tokens import Token


@dataclass(frozen=True)
class PoolParams:
    """Share token identity and the initial asset configuration.

    Attributes:
        pool_token_symbol: Symbol of the pool share token
        pool_token_name: Name of the pool share token
        constituent_tokens: Assets bound when the pool is created
        token_balances: Initial balance per asset (parallel to constituent_tokens)
        token_weights: Initial denormalized weight per asset (parallel)
        swap_fee: Initial engine swap fee
    """

    pool_token_symbol: str
    pool_token_name: str
    constituent_tokens: tuple[Token, ...]
    token_balances: tuple[int, ...]
    token_weights: tuple[int, ...]
    swap_fee: int

    def validate(self) -> None:
        """Check fee range, array lengths and asset count.

        Raises:
            ValidationError: With the code of the first failed check
        """
        if self.swap_fee < MIN_FEE or self.swap_fee > MAX_FEE:
            raise ValidationError("ERR_INVALID_SWAP_FEE", f"swap fee {self.swap_fee}")

        n = len(self.constituent_tokens)
        if len(self.token_balances) != n:
            raise ValidationError(
                "ERR_START_BALANCES_MISMATCH", f"{len(self.token_balances)} balances for {n} tokens"
            )
        if len(self.token_weights) != n:
            raise ValidationError(
                "ERR_START_WEIGHTS_MISMATCH", f"{len(self.token_weights)} weights for {n} tokens"
            )
        if n < MIN_ASSET_LIMIT:
            raise ValidationError("ERR_TOO_FEW_TOKENS", f"{n} < {MIN_ASSET_LIMIT}")
        if n > MAX_ASSET_LIMIT:
            raise ValidationError("ERR_TOO_MANY_TOKENS", f"{n} > {MAX_ASSET_LIMIT}")
        if len({token.address for token in self.constituent_tokens}) != n:
            raise ValidationError("ERR_DUPLICATE_TOKEN")

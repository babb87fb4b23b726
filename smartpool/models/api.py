"""Pydantic models for the smart pool HTTP API.

Amounts are uint256 decimal strings; field names are camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from smartpool.controller.pool import PoolSnapshot
from smartpool.models.types import Address, Uint256


class TokenStateModel(BaseModel):
    """A bound (or staged) asset."""

    address: Address
    symbol: str
    balance: Uint256
    denorm: Uint256 = Field(description="Denormalized weight")


class RightsModel(BaseModel):
    can_pause_swapping: bool = Field(alias="canPauseSwapping")
    can_change_swap_fee: bool = Field(alias="canChangeSwapFee")
    can_change_weights: bool = Field(alias="canChangeWeights")
    can_add_remove_tokens: bool = Field(alias="canAddRemoveTokens")
    can_whitelist_lps: bool = Field(alias="canWhitelistLPs")
    can_change_cap: bool = Field(alias="canChangeCap")

    model_config = {"populate_by_name": True}


class GradualUpdateModel(BaseModel):
    """A scheduled weight ramp."""

    start_block: int = Field(alias="startBlock")
    end_block: int = Field(alias="endBlock")
    start_weights: list[Uint256] = Field(alias="startWeights")
    end_weights: list[Uint256] = Field(alias="endWeights")

    model_config = {"populate_by_name": True}


class NewTokenModel(BaseModel):
    """The latest token add commitment."""

    address: Address
    balance: Uint256
    denorm: Uint256
    commit_block: int = Field(alias="commitBlock")
    is_committed: bool = Field(alias="isCommitted")

    model_config = {"populate_by_name": True}


class PoolResponse(BaseModel):
    """State of the controller and its engine at block_number."""

    address: Address
    controller: Address
    phase: str = Field(description="'uninitialized' or 'active'")
    block_number: int = Field(alias="blockNumber")
    total_supply: Uint256 = Field(alias="totalSupply")
    cap: Uint256
    swap_fee: Uint256 = Field(alias="swapFee")
    public_swap: bool = Field(alias="publicSwap")
    total_weight: Uint256 = Field(alias="totalWeight")
    tokens: list[TokenStateModel]
    rights: RightsModel
    gradual_update: GradualUpdateModel | None = Field(default=None, alias="gradualUpdate")
    new_token: NewTokenModel | None = Field(default=None, alias="newToken")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot, block_number: int) -> PoolResponse:
        plan = snapshot.gradual_update
        pending = snapshot.new_token
        rights = snapshot.rights
        return cls(
            address=snapshot.address,
            controller=snapshot.controller,
            phase=snapshot.phase,
            block_number=block_number,
            total_supply=str(snapshot.total_supply),
            cap=str(snapshot.cap),
            swap_fee=str(snapshot.swap_fee),
            public_swap=snapshot.public_swap,
            total_weight=str(snapshot.total_weight),
            tokens=[
                TokenStateModel(
                    address=token.address,
                    symbol=token.symbol,
                    balance=str(token.balance),
                    denorm=str(token.denorm),
                )
                for token in snapshot.tokens
            ],
            rights=RightsModel(
                can_pause_swapping=rights.can_pause_swapping,
                can_change_swap_fee=rights.can_change_swap_fee,
                can_change_weights=rights.can_change_weights,
                can_add_remove_tokens=rights.can_add_remove_tokens,
                can_whitelist_lps=rights.can_whitelist_lps,
                can_change_cap=rights.can_change_cap,
            ),
            gradual_update=None
            if plan is None
            else GradualUpdateModel(
                start_block=plan.start_block,
                end_block=plan.end_block,
                start_weights=[str(w) for w in plan.start_weights],
                end_weights=[str(w) for w in plan.end_weights],
            ),
            new_token=None
            if pending is None
            else NewTokenModel(
                address=pending.token.address,
                balance=str(pending.balance),
                denorm=str(pending.denorm),
                commit_block=pending.commit_block,
                is_committed=pending.is_committed,
            ),
        )


class CallRequest(BaseModel):
    """A controller call made on behalf of sender."""

    sender: Address


class JoinRequest(CallRequest):
    pool_amount_out: Uint256 = Field(alias="poolAmountOut")
    max_amounts_in: list[Uint256] = Field(alias="maxAmountsIn")

    model_config = {"populate_by_name": True}


class ExitRequest(CallRequest):
    pool_amount_in: Uint256 = Field(alias="poolAmountIn")
    min_amounts_out: list[Uint256] = Field(alias="minAmountsOut")

    model_config = {"populate_by_name": True}


class AmountsResponse(BaseModel):
    """Per-asset amounts moved by a join or exit, in engine token order."""

    amounts: list[Uint256]


class MineRequest(BaseModel):
    blocks: int = Field(default=1, ge=0, description="Blocks to advance")


class MineResponse(BaseModel):
    block_number: int = Field(alias="blockNumber")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Body returned for a rejected controller call."""

    code: str
    detail: str

"""API endpoints for the smart pool controller."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from smartpool.controller.pool import ConfigurableRightsPool
from smartpool.models.api import (
    AmountsResponse,
    CallRequest,
    ExitRequest,
    JoinRequest,
    MineRequest,
    MineResponse,
    PoolResponse,
)

logger = structlog.get_logger()

router = APIRouter()

# Controller served by this process, installed with set_default_controller
_default_controller: ConfigurableRightsPool | None = None


def set_default_controller(pool: ConfigurableRightsPool | None) -> None:
    """Install the controller served by the API (None to clear)."""
    global _default_controller
    _default_controller = pool


def get_controller() -> ConfigurableRightsPool:
    """Dependency provider for the controller instance.

    Override this in tests to inject a controller:
        app.dependency_overrides[get_controller] = lambda: pool

    Raises:
        HTTPException: 503 if no controller has been installed
    """
    if _default_controller is None:
        raise HTTPException(status_code=503, detail="No controller configured")
    return _default_controller


@router.get("/pool")
async def get_pool(pool: ConfigurableRightsPool = Depends(get_controller)) -> PoolResponse:
    """Current controller and engine state."""
    return PoolResponse.from_snapshot(pool.snapshot(), pool.chain.block_number)


@router.post("/pool/poke")
async def poke(
    request: CallRequest,
    pool: ConfigurableRightsPool = Depends(get_controller),
) -> PoolResponse:
    """Advance the gradual weight update to the current block."""
    pool.poke_weights(sender=request.sender)
    logger.info("api_poke", sender=request.sender, block=pool.chain.block_number)
    return PoolResponse.from_snapshot(pool.snapshot(), pool.chain.block_number)


@router.post("/pool/join")
async def join(
    request: JoinRequest,
    pool: ConfigurableRightsPool = Depends(get_controller),
) -> AmountsResponse:
    """Proportional join: mint poolAmountOut shares for every asset."""
    amounts = pool.join_pool(
        int(request.pool_amount_out),
        [int(amount) for amount in request.max_amounts_in],
        sender=request.sender,
    )
    return AmountsResponse(amounts=[str(amount) for amount in amounts])


@router.post("/pool/exit")
async def exit_(
    request: ExitRequest,
    pool: ConfigurableRightsPool = Depends(get_controller),
) -> AmountsResponse:
    """Proportional exit: redeem poolAmountIn shares for every asset."""
    amounts = pool.exit_pool(
        int(request.pool_amount_in),
        [int(amount) for amount in request.min_amounts_out],
        sender=request.sender,
    )
    return AmountsResponse(amounts=[str(amount) for amount in amounts])


@router.post("/chain/mine")
async def mine(
    request: MineRequest,
    pool: ConfigurableRightsPool = Depends(get_controller),
) -> MineResponse:
    """Advance the block height of the controller's chain."""
    block_number = pool.chain.mine(request.blocks)
    logger.debug("api_mine", blocks=request.blocks, block_number=block_number)
    return MineResponse(block_number=block_number)

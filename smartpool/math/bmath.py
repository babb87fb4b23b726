"""Constant-weight pool pricing formulas.

Spot price, swap and single-asset join/exit formulas for the engine.
Every intermediate step uses BNum rounding so results match the on-chain
engine to the wei.
"""

from smartpool.constants import BONE, ENGINE_EXIT_FEE

from .bnum import badd, bdiv, bmul, bpow, bsub


def calc_spot_price(
    token_balance_in: int,
    token_weight_in: int,
    token_balance_out: int,
    token_weight_out: int,
    swap_fee: int,
) -> int:
    """Spot price of token_out in units of token_in, including the swap fee.

    Formula:
        sP = (bI / wI) / (bO / wO) * (1 / (1 - sF))
    """
    numer = bdiv(token_balance_in, token_weight_in)
    denom = bdiv(token_balance_out, token_weight_out)
    ratio = bdiv(numer, denom)
    scale = bdiv(BONE, bsub(BONE, swap_fee))
    return bmul(ratio, scale)


def calc_out_given_in(
    token_balance_in: int,
    token_weight_in: int,
    token_balance_out: int,
    token_weight_out: int,
    token_amount_in: int,
    swap_fee: int,
) -> int:
    """Output amount for an exact input.

    Formula:
        aO = bO * (1 - (bI / (bI + aI * (1 - sF))) ^ (wI / wO))
    """
    weight_ratio = bdiv(token_weight_in, token_weight_out)
    adjusted_in = bmul(token_amount_in, bsub(BONE, swap_fee))
    y = bdiv(token_balance_in, badd(token_balance_in, adjusted_in))
    foo = bpow(y, weight_ratio)
    bar = bsub(BONE, foo)
    return bmul(token_balance_out, bar)


def calc_in_given_out(
    token_balance_in: int,
    token_weight_in: int,
    token_balance_out: int,
    token_weight_out: int,
    token_amount_out: int,
    swap_fee: int,
) -> int:
    """Input amount for an exact output.

    Formula:
        aI = bI * ((bO / (bO - aO)) ^ (wO / wI) - 1) / (1 - sF)
    """
    weight_ratio = bdiv(token_weight_out, token_weight_in)
    diff = bsub(token_balance_out, token_amount_out)
    y = bdiv(token_balance_out, diff)
    foo = bsub(bpow(y, weight_ratio), BONE)
    return bdiv(bmul(token_balance_in, foo), bsub(BONE, swap_fee))


def calc_pool_out_given_single_in(
    token_balance_in: int,
    token_weight_in: int,
    pool_supply: int,
    total_weight: int,
    token_amount_in: int,
    swap_fee: int,
) -> int:
    """Pool shares minted for depositing a single asset.

    Only the part of the deposit that is implicitly swapped into the other
    assets (1 - normalized weight) pays the swap fee.

    Formula:
        pAo = pS * ((bI + aI * (1 - (1 - wI/tW) * sF)) / bI) ^ (wI/tW) - pS
    """
    normalized_weight = bdiv(token_weight_in, total_weight)
    zaz = bmul(bsub(BONE, normalized_weight), swap_fee)
    token_amount_in_after_fee = bmul(token_amount_in, bsub(BONE, zaz))

    new_token_balance_in = badd(token_balance_in, token_amount_in_after_fee)
    token_in_ratio = bdiv(new_token_balance_in, token_balance_in)

    pool_ratio = bpow(token_in_ratio, normalized_weight)
    new_pool_supply = bmul(pool_ratio, pool_supply)
    return bsub(new_pool_supply, pool_supply)


def calc_single_in_given_pool_out(
    token_balance_in: int,
    token_weight_in: int,
    pool_supply: int,
    total_weight: int,
    pool_amount_out: int,
    swap_fee: int,
) -> int:
    """Single-asset deposit required to mint an exact number of pool shares.

    Formula:
        tAi = (bI * ((pS + pAo) / pS) ^ (tW/wI) - bI) / (1 - (1 - wI/tW) * sF)
    """
    normalized_weight = bdiv(token_weight_in, total_weight)
    new_pool_supply = badd(pool_supply, pool_amount_out)
    pool_ratio = bdiv(new_pool_supply, pool_supply)

    boo = bdiv(BONE, normalized_weight)
    token_in_ratio = bpow(pool_ratio, boo)
    new_token_balance_in = bmul(token_in_ratio, token_balance_in)
    token_amount_in_after_fee = bsub(new_token_balance_in, token_balance_in)

    zar = bmul(bsub(BONE, normalized_weight), swap_fee)
    return bdiv(token_amount_in_after_fee, bsub(BONE, zar))


def calc_single_out_given_pool_in(
    token_balance_out: int,
    token_weight_out: int,
    pool_supply: int,
    total_weight: int,
    pool_amount_in: int,
    swap_fee: int,
) -> int:
    """Single-asset withdrawal for redeeming an exact number of pool shares.

    Formula:
        tAo = (bO - bO * ((pS - pAi) / pS) ^ (tW/wO)) * (1 - (1 - wO/tW) * sF)
    """
    normalized_weight = bdiv(token_weight_out, total_weight)
    pool_amount_in_after_exit_fee = bmul(pool_amount_in, bsub(BONE, ENGINE_EXIT_FEE))
    new_pool_supply = bsub(pool_supply, pool_amount_in_after_exit_fee)
    pool_ratio = bdiv(new_pool_supply, pool_supply)

    token_out_ratio = bpow(pool_ratio, bdiv(BONE, normalized_weight))
    new_token_balance_out = bmul(token_out_ratio, token_balance_out)
    token_amount_out_before_swap_fee = bsub(token_balance_out, new_token_balance_out)

    zaz = bmul(bsub(BONE, normalized_weight), swap_fee)
    return bmul(token_amount_out_before_swap_fee, bsub(BONE, zaz))


def calc_pool_in_given_single_out(
    token_balance_out: int,
    token_weight_out: int,
    pool_supply: int,
    total_weight: int,
    token_amount_out: int,
    swap_fee: int,
) -> int:
    """Pool shares burned to withdraw an exact amount of a single asset.

    Formula:
        pAi = (pS - pS * ((bO - tAo / (1 - (1 - wO/tW) * sF)) / bO) ^ (wO/tW)) / (1 - eF)
    """
    normalized_weight = bdiv(token_weight_out, total_weight)
    zoo = bsub(BONE, normalized_weight)
    zar = bmul(zoo, swap_fee)
    token_amount_out_before_swap_fee = bdiv(token_amount_out, bsub(BONE, zar))

    new_token_balance_out = bsub(token_balance_out, token_amount_out_before_swap_fee)
    token_out_ratio = bdiv(new_token_balance_out, token_balance_out)

    pool_ratio = bpow(token_out_ratio, normalized_weight)
    new_pool_supply = bmul(pool_ratio, pool_supply)
    pool_amount_in_after_exit_fee = bsub(pool_supply, new_pool_supply)

    return bdiv(pool_amount_in_after_exit_fee, bsub(BONE, ENGINE_EXIT_FEE))

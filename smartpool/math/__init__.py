"""Mathematical utilities for the smart pool.

This package provides the fixed-point primitives and pricing formulas of the
constant-weight engine:
- bnum: 18-decimal fixed-point arithmetic with half-up rounding
- bmath: spot price, swap and single-asset join/exit formulas
"""

from smartpool.math.bmath import (
    calc_in_given_out,
    calc_out_given_in,
    calc_pool_in_given_single_out,
    calc_pool_out_given_single_in,
    calc_single_in_given_pool_out,
    calc_single_out_given_pool_in,
    calc_spot_price,
)
from smartpool.math.bnum import badd, bdiv, bmul, bpow, bsub

__all__ = [
    "badd",
    "bsub",
    "bmul",
    "bdiv",
    "bpow",
    "calc_spot_price",
    "calc_out_given_in",
    "calc_in_given_out",
    "calc_pool_out_given_single_in",
    "calc_single_in_given_pool_out",
    "calc_single_out_given_pool_in",
    "calc_pool_in_given_single_out",
]

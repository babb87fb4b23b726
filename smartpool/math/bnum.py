"""Balancer V1 fixed-point (BNum) math library.

This module implements 18-decimal fixed-point arithmetic with the rounding
rules of the constant-weight pool engine: multiplication and division round
half-up, subtraction never goes negative, and every intermediate value must
fit in uint256.

All values are plain integers scaled by 10^18.
"""

from __future__ import annotations

from smartpool.constants import BONE, BPOW_PRECISION, MAX_BPOW_BASE, MIN_BPOW_BASE, MAX_UINT

__all__ = [
    # Errors
    "BNumError",
    "Overflow",
    "Underflow",
    "DivisionByZero",
    "BPowBaseError",
    # Functions
    "btoi",
    "bfloor",
    "badd",
    "bsub",
    "bsub_sign",
    "bmul",
    "bdiv",
    "bpowi",
    "bpow",
    "bpow_approx",
    "bmin",
    "bmax",
]


# =============================================================================
# Error classes
# =============================================================================


class BNumError(ArithmeticError):
    """Base error for fixed-point operations."""

    code = "ERR_BNUM"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.code}: {message}")


class Overflow(BNumError):
    """Result does not fit in uint256."""

    code = "ERR_OVERFLOW"


class Underflow(BNumError):
    """Subtraction would produce a negative result."""

    code = "ERR_SUB_UNDERFLOW"


class DivisionByZero(BNumError):
    """Fixed-point division by zero."""

    code = "ERR_DIV_ZERO"


class BPowBaseError(BNumError):
    """Base of bpow is outside [MIN_BPOW_BASE, MAX_BPOW_BASE]."""

    code = "ERR_BPOW_BASE"


def _check(value: int, op: str) -> int:
    if value > MAX_UINT:
        raise Overflow(f"{op} result exceeds uint256")
    return value


# =============================================================================
# Core operations
# =============================================================================


def btoi(a: int) -> int:
    """Truncate a fixed-point value to its integer part (unscaled)."""
    return a // BONE


def bfloor(a: int) -> int:
    """Round a fixed-point value down to a whole number (still scaled)."""
    return btoi(a) * BONE


def badd(a: int, b: int) -> int:
    return _check(a + b, "badd")


def bsub_sign(a: int, b: int) -> tuple[int, bool]:
    """Return (|a - b|, a < b)."""
    if a >= b:
        return a - b, False
    return b - a, True


def bsub(a: int, b: int) -> int:
    """Subtract b from a.

    Raises:
        Underflow: If b > a
    """
    c, negative = bsub_sign(a, b)
    if negative:
        raise Underflow(f"{a} - {b}")
    return c


def bmul(a: int, b: int) -> int:
    """Multiply two fixed-point values, rounding half-up.

    (a * b + BONE/2) / BONE
    """
    c0 = _check(a * b, "bmul")
    c1 = _check(c0 + BONE // 2, "bmul")
    return c1 // BONE


def bdiv(a: int, b: int) -> int:
    """Divide two fixed-point values, rounding half-up.

    (a * BONE + b/2) / b

    Raises:
        DivisionByZero: If b is zero
    """
    if b == 0:
        raise DivisionByZero(f"{a} / 0")
    c0 = _check(a * BONE, "bdiv")
    c1 = _check(c0 + b // 2, "bdiv")
    return c1 // b


def bmin(a: int, b: int) -> int:
    return a if a < b else b


def bmax(a: int, b: int) -> int:
    return a if a > b else b


# =============================================================================
# Exponentiation
# =============================================================================


def bpowi(a: int, n: int) -> int:
    """Raise a fixed-point base to a whole (unscaled) integer power.

    Square-and-multiply with bmul rounding at every step.
    """
    z = a if n % 2 != 0 else BONE

    n //= 2
    while n != 0:
        a = bmul(a, a)
        if n % 2 != 0:
            z = bmul(z, a)
        n //= 2

    return z


def bpow(base: int, exp: int) -> int:
    """Compute base^exp where both are fixed-point.

    The whole part of the exponent uses bpowi; the fractional part uses the
    binomial series in bpow_approx.

    Raises:
        BPowBaseError: If base is outside [MIN_BPOW_BASE, MAX_BPOW_BASE]
    """
    if base < MIN_BPOW_BASE:
        raise BPowBaseError(f"base {base} too low")
    if base > MAX_BPOW_BASE:
        raise BPowBaseError(f"base {base} too high")

    whole = bfloor(exp)
    remain = bsub(exp, whole)

    whole_pow = bpowi(base, btoi(whole))

    if remain == 0:
        return whole_pow

    partial_result = bpow_approx(base, remain, BPOW_PRECISION)
    return bmul(whole_pow, partial_result)


def bpow_approx(base: int, exp: int, precision: int) -> int:
    """Approximate base^exp for a fractional exponent (exp < 1).

    Sums the binomial series
        (1 + x)^a = 1 + a*x + a(a-1)/2! * x^2 + ...
    with x = base - 1, until a term drops below ``precision``.
    """
    a = exp
    x, xneg = bsub_sign(base, BONE)
    term = BONE
    total = term
    negative = False

    # Each term(k) = term(k-1) * (a - (k-1)) * x / k
    i = 1
    while term >= precision:
        big_k = i * BONE
        c, cneg = bsub_sign(a, bsub(big_k, BONE))
        term = bmul(term, bmul(c, x))
        term = bdiv(term, big_k)
        if term == 0:
            break

        if xneg:
            negative = not negative
        if cneg:
            negative = not negative
        if negative:
            total = bsub(total, term)
        else:
            total = badd(total, term)
        i += 1

    return total

"""Unsigned fixed-point helpers. Integers only; every product is checked against the 128-bit range."""
from __future__ import annotations

from oracle_market.shop.errors import DivisionByZero, Overflow

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

# 10**38 is the largest power of ten below 2**128.
MAX_POWER_OF_TEN = 38


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    """a * b, or Overflow when the product leaves [0, limit]."""
    if a < 0 or b < 0:
        raise Overflow("Operands must be unsigned")
    product = a * b
    if product > limit:
        raise Overflow(f"{a} * {b} exceeds {limit.bit_length()}-bit range")
    return product


def pow10(exponent: int) -> int:
    if exponent < 0 or exponent > MAX_POWER_OF_TEN:
        raise Overflow(f"10^{exponent} is outside the supported range 0..{MAX_POWER_OF_TEN}")
    return 10**exponent


def ceil_div(numerator: int, denominator: int) -> int:
    """Smallest q with q * denominator >= numerator. ceil_div(7, 2) == 4."""
    if denominator == 0:
        raise DivisionByZero()
    quotient, remainder = divmod(numerator, denominator)
    return quotient + 1 if remainder else quotient


def to_u64(value: int) -> int:
    if value < 0 or value > U64_MAX:
        raise Overflow(f"{value} does not fit in 64 bits")
    return value

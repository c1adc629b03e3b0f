import pytest

from oracle_market.shop.errors import DivisionByZero, Overflow
from oracle_market.shop.fixed_point import U64_MAX, U128_MAX, ceil_div, checked_mul, pow10, to_u64


def test_ceil_div_rounds_up_only_with_remainder():
    assert ceil_div(7, 2) == 4
    assert ceil_div(8, 2) == 4
    assert ceil_div(0, 5) == 0
    assert ceil_div(1, 10**18) == 1


def test_ceil_div_rejects_zero_divisor():
    with pytest.raises(DivisionByZero):
        ceil_div(1, 0)


def test_checked_mul_stays_inside_128_bits():
    assert checked_mul(2**64, 2**63) == 2**127
    with pytest.raises(Overflow):
        checked_mul(2**64, 2**64)
    assert checked_mul(U128_MAX, 1) == U128_MAX


def test_checked_mul_honours_custom_limit():
    with pytest.raises(Overflow):
        checked_mul(2**32, 2**32, limit=U64_MAX)


def test_pow10_range():
    assert pow10(0) == 1
    assert pow10(38) == 10**38
    with pytest.raises(Overflow):
        pow10(39)
    with pytest.raises(Overflow):
        pow10(-1)


def test_to_u64_bounds():
    assert to_u64(U64_MAX) == U64_MAX
    with pytest.raises(Overflow):
        to_u64(U64_MAX + 1)

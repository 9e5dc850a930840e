"""
Fixed-Point Arithmetic - checked integer math for pool accounting.

Stored quantities (amounts, shares, weights, fees) are u64. Products and
weighted claims are computed in u128 before dividing back down. Nothing
wraps and nothing is silently truncated except by an explicit floor
division: an out-of-range result raises Overflow, a zero divisor raises
DivideByZero.

bits=None drops the upper bound; only the sign is checked. The solvency and
pending-value views measure with it.

Weights are fixed-point with WEIGHT_SCALE = 10^8 meaning 1.0.
"""
from typing import Optional

from multistake_config import U64_BITS, U128_BITS
from multistake_errors import DivideByZero, Overflow


def _check_range(value: int, bits: Optional[int], what: str) -> int:
    """Require 0 <= value < 2**bits (or just 0 <= value when bits is None)."""
    if value < 0:
        raise Overflow(f"{what} is negative: {value}")
    if bits is not None and value >> bits:
        raise Overflow(f"{what} out of u{bits} range: {value}")
    return value


def checked_add(a: int, b: int, bits: Optional[int] = U64_BITS) -> int:
    """a + b, Overflow if the sum leaves u<bits>."""
    _check_range(a, bits, "operand")
    _check_range(b, bits, "operand")
    return _check_range(a + b, bits, "sum")


def checked_sub(a: int, b: int, bits: Optional[int] = U64_BITS) -> int:
    """a - b, Overflow on underflow."""
    _check_range(a, bits, "operand")
    _check_range(b, bits, "operand")
    return _check_range(a - b, bits, "difference")


def checked_mul(a: int, b: int, bits: Optional[int] = U64_BITS) -> int:
    """a * b, Overflow if the product leaves u<bits>."""
    _check_range(a, bits, "operand")
    _check_range(b, bits, "operand")
    return _check_range(a * b, bits, "product")


def checked_div(a: int, b: int, bits: Optional[int] = U64_BITS) -> int:
    """floor(a / b), DivideByZero if b == 0."""
    _check_range(a, bits, "operand")
    _check_range(b, bits, "operand")
    if b == 0:
        raise DivideByZero("division by zero")
    return a // b


def mul_div(a: int, b: int, c: int, bits: Optional[int] = U128_BITS) -> int:
    """floor(a * b / c) with the intermediate product checked in u<bits>."""
    return checked_div(checked_mul(a, b, bits), c, bits)

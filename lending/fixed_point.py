"""Checked unsigned 256-bit arithmetic on fixed-point integers.

Python integers never overflow, so every helper validates its result against
the uint256 range instead. All divisions truncate toward zero unless the
helper name says otherwise.
"""
from __future__ import annotations

from .constants import MAX_UINT256, SCALE
from .errors import DivisionByZero, MathOverflow, MathUnderflow


def check_uint(value: int, name: str = "value") -> int:
    """Return ``value`` if it is a valid uint256, raise otherwise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise MathUnderflow(f"{name} is negative: {value}")
    if value > MAX_UINT256:
        raise MathOverflow(f"{name} exceeds uint256")
    return value


def add(a: int, b: int) -> int:
    result = a + b
    if result > MAX_UINT256:
        raise MathOverflow(f"{a} + {b} exceeds uint256")
    return result


def sub(a: int, b: int) -> int:
    if b > a:
        raise MathUnderflow(f"{a} - {b} is negative")
    return a - b


def mul_div(a: int, b: int, denominator: int) -> int:
    """``a * b / denominator`` truncated, with a full-width intermediate."""
    if denominator == 0:
        raise DivisionByZero(f"{a} * {b} / 0")
    result = (a * b) // denominator
    if result > MAX_UINT256:
        raise MathOverflow(f"{a} * {b} / {denominator} exceeds uint256")
    return result


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """Like :func:`mul_div` but rounds up."""
    if denominator == 0:
        raise DivisionByZero(f"{a} * {b} / 0")
    result = -((-(a * b)) // denominator)
    if result > MAX_UINT256:
        raise MathOverflow(f"{a} * {b} / {denominator} exceeds uint256")
    return result


def wad_mul(a: int, b: int) -> int:
    """Multiply two scaled values: ``a * b / SCALE``."""
    return mul_div(a, b, SCALE)


def wad_div(a: int, b: int) -> int:
    """Divide two scaled values: ``a * SCALE / b``."""
    return mul_div(a, SCALE, b)


def rescale_price(price: int, asset_decimals: int, base_decimals: int) -> int:
    """Turn a price per whole asset token into a price per smallest asset unit.

    ``price`` is quoted in whole base-asset tokens; the result is quoted in
    smallest base-asset units, so ``amount * result / SCALE`` is a base amount.
    """
    return mul_div(price, 10**base_decimals, 10**asset_decimals)

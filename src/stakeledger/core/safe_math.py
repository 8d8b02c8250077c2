"""
Checked unsigned 256-bit arithmetic.

Python integers never wrap, so overflow has to be detected explicitly:
every helper here fails with ArithmeticOverflowError instead of returning
a value outside ``[0, MAX_UINT256]``.
"""

from __future__ import annotations

from .ledger_exceptions import ArithmeticOverflowError

MAX_UINT256 = 2**256 - 1


def require_uint(value: int, field: str = "value") -> int:
    """Validate that ``value`` is an int inside the uint256 range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflowError(
            f"{field} out of uint256 range: {value}",
            details={"field": field},
        )
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > MAX_UINT256:
        raise ArithmeticOverflowError(
            "Addition overflow",
            details={"a": a, "b": b},
        )
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflowError(
            "Subtraction underflow",
            details={"a": a, "b": b},
        )
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > MAX_UINT256:
        raise ArithmeticOverflowError(
            "Multiplication overflow",
            details={"a": a, "b": b},
        )
    return result


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Calculate floor((a * b) / denominator) with the intermediate product checked.

    Args:
        a: First multiplicand
        b: Second multiplicand
        denominator: Divisor, must be non-zero

    Returns:
        Floor of the quotient
    """
    if denominator == 0:
        raise ArithmeticOverflowError("Division by zero")
    return checked_mul(a, b) // denominator


__all__ = [
    "MAX_UINT256",
    "require_uint",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "mul_div",
]

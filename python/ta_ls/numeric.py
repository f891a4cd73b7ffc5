"""Decimal helpers shared by indicators, the trader and metrics.

All money and indicator arithmetic runs under one context so results do not
depend on whatever the caller's thread-local context happens to be.
"""

from __future__ import annotations

import functools
from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import Callable, TypeVar, Union

import numpy as np

# Same precision as IEEE 754 decimal128.
DECIMAL_CTX = Context(prec=34, rounding=ROUND_HALF_EVEN)

ZERO = Decimal(0)
ONE = Decimal(1)
NAN = Decimal("NaN")

Number = Union[Decimal, int, float, str, np.floating, np.integer]

F = TypeVar("F", bound=Callable)


def decimal_context(func: F) -> F:
    """Run ``func`` under :data:`DECIMAL_CTX`."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with localcontext(DECIMAL_CTX):
            return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def to_decimal(x: Number) -> Decimal:
    """Convert to Decimal without inheriting binary float noise.

    Floats go through ``repr`` so ``0.03`` becomes ``Decimal('0.03')``.
    """
    if isinstance(x, Decimal):
        return x
    if isinstance(x, (int, np.integer)):
        return Decimal(int(x))
    if isinstance(x, (float, np.floating)):
        return Decimal(repr(float(x)))
    return Decimal(str(x))


def dsqrt(x: Decimal) -> Decimal:
    if x <= 0:
        return ZERO
    return x.sqrt(DECIMAL_CTX)


def floor_int(x: Decimal) -> int:
    """Whole units contained in ``x`` (never negative)."""
    if x <= 0:
        return 0
    return int(x.to_integral_value(rounding=ROUND_FLOOR))


def is_nan(x: Decimal) -> bool:
    return isinstance(x, Decimal) and x.is_nan()

"""Performance metrics.

Undefined results (zero standard deviation, non-positive peak) are reported as
``Decimal('NaN')`` rather than raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

import numpy as np

from .exceptions import InsufficientDataError
from .numeric import NAN, ZERO, decimal_context, dsqrt, is_nan, to_decimal

logger = logging.getLogger(__name__)


def _require_points(values: Sequence[Decimal], k: int = 2) -> None:
    if len(values) < k:
        raise InsufficientDataError(f"need at least {k} portfolio values, got {len(values)}")


@decimal_context
def daily_returns(values: Sequence[Decimal]) -> List[Decimal]:
    """Simple returns between consecutive points; NaN where the prior value is 0."""
    _require_points(values)
    out = []
    for prev, cur in zip(values[:-1], values[1:]):
        out.append(NAN if prev == 0 else (cur - prev) / prev)
    return out


@decimal_context
def mean_return(returns: Sequence[Decimal]) -> Decimal:
    if not returns:
        return NAN
    return sum(returns, ZERO) / len(returns)


@decimal_context
def return_variance(returns: Sequence[Decimal]) -> Decimal:
    """Population variance."""
    if not returns:
        return NAN
    m = mean_return(returns)
    return sum(((r - m) ** 2 for r in returns), ZERO) / len(returns)


@decimal_context
def sharpe_ratio(values: Sequence[Decimal], periods_per_year: int = 252) -> Decimal:
    """Annualized Sharpe ratio (no risk-free rate) of a value series."""
    rets = daily_returns(values)
    if any(is_nan(r) for r in rets):
        logger.warning("Sharpe undefined: portfolio value hit zero")
        return NAN
    sd = dsqrt(return_variance(rets))
    if sd == 0:
        logger.warning("Sharpe undefined: returns have zero variance")
        return NAN
    return mean_return(rets) / sd * dsqrt(Decimal(periods_per_year))


@decimal_context
def max_drawdown(values: Sequence[Decimal]) -> Decimal:
    """Maximum drawdown (as positive fraction) against the running peak."""
    if len(values) == 0:
        return NAN
    x = np.array(values, dtype=object)
    peak = np.maximum.accumulate(x)
    worst = ZERO
    for p, v in zip(peak, x):
        if p <= 0:
            logger.warning("drawdown undefined: non-positive peak %s", p)
            return NAN
        worst = max(worst, (p - v) / p)
    return worst


@dataclass(frozen=True)
class PerformanceSummary:
    initial_capital: Decimal
    final_capital: Decimal
    total_return: Decimal
    max_drawdown: Decimal
    sharpe_ratio: Decimal
    n_days: int

    def as_dict(self) -> dict:
        """Float view for presentation."""
        return {
            "initial_capital": float(self.initial_capital),
            "final_capital": float(self.final_capital),
            "total_return": float(self.total_return),
            "max_drawdown_pct": float(self.max_drawdown) * 100.0,
            "sharpe_ratio": float(self.sharpe_ratio),
            "n_days": self.n_days,
        }


@decimal_context
def summarize(values: Sequence[Decimal], initial_capital, periods_per_year: int = 252) -> PerformanceSummary:
    """Final capital, drawdown and Sharpe of a portfolio value series."""
    _require_points(values)
    initial = to_decimal(initial_capital)
    final = values[-1]
    total = (final - initial) / initial if initial != 0 else NAN
    return PerformanceSummary(
        initial_capital=initial,
        final_capital=final,
        total_return=total,
        max_drawdown=max_drawdown(values),
        sharpe_ratio=sharpe_ratio(values, periods_per_year),
        n_days=len(values),
    )

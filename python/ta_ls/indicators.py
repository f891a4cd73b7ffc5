"""Indicator computation utilities.

Every function takes chronological Decimal sequences whose last element is the
current bar. With fewer observations than a window needs, the function returns
a neutral value (``Decimal(0)``, or an empty list for the filter) instead of
raising, because the trader calls them from the first tradable bar.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import List, Sequence

from .config import IndicatorConfig
from .numeric import ONE, ZERO, decimal_context, dsqrt, to_decimal
from .types import IndicatorSnapshot

_HUNDRED = Decimal(100)
_TWO = Decimal(2)
_THREE = Decimal(3)


def _check_window(n: int) -> None:
    if n <= 0:
        raise ValueError("window must be positive")


def _mean(xs: Sequence[Decimal]) -> Decimal:
    return sum(xs, ZERO) / len(xs)


def _pstdev(xs: Sequence[Decimal]) -> Decimal:
    m = _mean(xs)
    return dsqrt(sum(((x - m) ** 2 for x in xs), ZERO) / len(xs))


def latest(values: Sequence[Decimal]) -> Decimal:
    """Last value of a series, or zero for an empty one."""
    return values[-1] if len(values) > 0 else ZERO


@decimal_context
def volatility(prices: Sequence[Decimal], n: int) -> Decimal:
    """Population std-dev of simple returns inside the last ``n`` closes."""
    _check_window(n)
    if len(prices) < n or n < 2:
        return ZERO
    window = prices[-n:]
    rets = [(cur - prev) / prev for prev, cur in zip(window[:-1], window[1:]) if prev != 0]
    if not rets:
        return ZERO
    return _pstdev(rets)


@decimal_context
def rsi(prices: Sequence[Decimal], n: int) -> Decimal:
    """Relative strength index (simple averages) over the last ``n`` price changes.

    Needs ``n + 1`` closes.
    """
    _check_window(n)
    if len(prices) < n + 1:
        return ZERO
    window = prices[-(n + 1):]
    gains = ZERO
    losses = ZERO
    for prev, cur in zip(window[:-1], window[1:]):
        d = cur - prev
        if d > 0:
            gains += d
        elif d < 0:
            losses -= d
    avg_gain = gains / n
    avg_loss = losses / n
    if avg_loss == 0:
        # flat window -> midpoint; only gains -> 100
        return Decimal(50) if avg_gain == 0 else _HUNDRED
    rs = avg_gain / avg_loss
    return _HUNDRED - _HUNDRED / (ONE + rs)


@decimal_context
def lsma(prices: Sequence[Decimal], n: int) -> Decimal:
    """Least-squares moving average: regression value at the newest point."""
    _check_window(n)
    if len(prices) < n:
        return ZERO
    window = prices[-n:]
    if n == 1:
        return window[0]
    sum_x = Decimal(n * (n - 1) // 2)
    sum_x2 = Decimal((n - 1) * n * (2 * n - 1) // 6)
    sum_y = sum(window, ZERO)
    sum_xy = sum((Decimal(i) * y for i, y in enumerate(window)), ZERO)
    dn = Decimal(n)
    denom = dn * sum_x2 - sum_x * sum_x
    slope = (dn * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / dn
    return intercept + slope * Decimal(n - 1)


def _gaussian_alpha(n: int, poles: int) -> Decimal:
    # Ehlers: beta = (1 - cos(2pi/n)) / (2^(1/poles) - 1)
    beta = (1.0 - math.cos(2.0 * math.pi / n)) / (math.pow(2.0, 1.0 / poles) - 1.0)
    alpha = -beta + math.sqrt(beta * beta + 2.0 * beta)
    return to_decimal(alpha)


@decimal_context
def gaussian_filter(prices: Sequence[Decimal], n: int, poles: int) -> List[Decimal]:
    """Recursive Gaussian low-pass filter with ``poles`` order.

    Returns the smoothed series aligned with ``prices``; callers normally only
    use the last value (see :func:`latest`).
    """
    _check_window(n)
    if poles <= 0:
        raise ValueError("poles must be positive")
    if len(prices) < n:
        return []

    alpha = _gaussian_alpha(n, poles)
    one_minus = ONE - alpha
    gain = alpha ** poles
    # signed feedback weights: (-1)^(k+1) * C(p, k) * (1 - alpha)^k
    weights = [
        Decimal((-1) ** (k + 1) * math.comb(poles, k)) * one_minus ** k
        for k in range(1, poles + 1)
    ]

    seed = prices[0]
    out: List[Decimal] = []
    for t, x in enumerate(prices):
        acc = gain * x
        for k, w in enumerate(weights, start=1):
            prev = out[t - k] if t - k >= 0 else seed
            acc += w * prev
        out.append(acc)
    return out


@decimal_context
def adx(highs: Sequence[Decimal], lows: Sequence[Decimal], closes: Sequence[Decimal], n: int) -> Decimal:
    """Average Directional Index (Wilder smoothing).

    Needs ``n + 1`` bars (``n`` directional moves) before it reports a value.
    """
    _check_window(n)
    size = min(len(highs), len(lows), len(closes))
    if size < n + 1:
        return ZERO
    highs = highs[-size:]
    lows = lows[-size:]
    closes = closes[-size:]

    trs: List[Decimal] = []
    plus_dm: List[Decimal] = []
    minus_dm: List[Decimal] = []
    for i in range(1, size):
        up = highs[i] - highs[i - 1]
        down = lows[i - 1] - lows[i]
        plus_dm.append(up if (up > down and up > 0) else ZERO)
        minus_dm.append(down if (down > up and down > 0) else ZERO)
        trs.append(max(highs[i] - lows[i], abs(highs[i] - closes[i - 1]), abs(lows[i] - closes[i - 1])))

    dn = Decimal(n)
    tr_s = sum(trs[:n], ZERO)
    pdm_s = sum(plus_dm[:n], ZERO)
    mdm_s = sum(minus_dm[:n], ZERO)

    def _dx() -> Decimal:
        if tr_s == 0:
            return ZERO
        pdi = _HUNDRED * pdm_s / tr_s
        mdi = _HUNDRED * mdm_s / tr_s
        total = pdi + mdi
        if total == 0:
            return ZERO
        return _HUNDRED * abs(pdi - mdi) / total

    value = _dx()
    for i in range(n, len(trs)):
        tr_s = tr_s - tr_s / dn + trs[i]
        pdm_s = pdm_s - pdm_s / dn + plus_dm[i]
        mdm_s = mdm_s - mdm_s / dn + minus_dm[i]
        value = (value * (dn - ONE) + _dx()) / dn
    return value


@decimal_context
def zscore(prices: Sequence[Decimal], n: int) -> Decimal:
    """(last - mean) / std over the last ``n`` closes; 0 when std is 0."""
    _check_window(n)
    if len(prices) < n:
        return ZERO
    window = prices[-n:]
    sd = _pstdev(window)
    if sd == 0:
        return ZERO
    return (window[-1] - _mean(window)) / sd


def _ema(xs: Sequence[Decimal], n: int) -> List[Decimal]:
    alpha = _TWO / Decimal(n + 1)
    out: List[Decimal] = []
    for x in xs:
        out.append(x if not out else out[-1] + alpha * (x - out[-1]))
    return out


@decimal_context
def tema(prices: Sequence[Decimal], n: int) -> Decimal:
    """Triple exponential moving average at the newest point."""
    _check_window(n)
    if len(prices) < n:
        return ZERO
    e1 = _ema(prices, n)
    e2 = _ema(e1, n)
    e3 = _ema(e2, n)
    return _THREE * e1[-1] - _THREE * e2[-1] + e3[-1]


def previous_tema(prices: Sequence[Decimal], n: int) -> Decimal:
    """TEMA one bar earlier (the series without its newest point)."""
    _check_window(n)
    if len(prices) < 1:
        return ZERO
    return tema(prices[:-1], n)


def compute_snapshot(
    closes: Sequence[Decimal],
    highs: Sequence[Decimal],
    lows: Sequence[Decimal],
    cfg: IndicatorConfig,
) -> IndicatorSnapshot:
    """Evaluate every indicator over one window."""
    n = cfg.lookback
    return IndicatorSnapshot(
        vol_long=volatility(closes, n),
        vol_short=volatility(closes, cfg.short_vol_window),
        rsi=rsi(closes, n),
        lsma=lsma(closes, n),
        gaussian=latest(gaussian_filter(closes, n, cfg.gaussian_poles)),
        adx=adx(highs, lows, closes, n),
        zscore=zscore(closes, n),
        tema=tema(closes, n),
        tema_prev=previous_tema(closes, n),
    )

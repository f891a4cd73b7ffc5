import math
import random
from decimal import Decimal

import pytest

from ta_ls import indicators as ind
from ta_ls.config import IndicatorConfig
from ta_ls.types import IndicatorSnapshot


def D(xs):
    return [Decimal(str(x)) for x in xs]


class TestNeutralValues:
    """With fewer observations than the window, indicators return neutral values."""

    @pytest.mark.parametrize("n_obs", [0, 1, 13])
    def test_scalar_indicators_return_zero(self, n_obs):
        prices = D(range(100, 100 + n_obs))
        assert ind.volatility(prices, 14) == 0
        assert ind.rsi(prices, 14) == 0
        assert ind.lsma(prices, 14) == 0
        assert ind.zscore(prices, 14) == 0
        assert ind.tema(prices, 14) == 0
        assert ind.previous_tema(prices, 14) == 0
        assert ind.adx(prices, prices, prices, 14) == 0

    def test_gaussian_filter_returns_empty(self):
        assert ind.gaussian_filter(D(range(10)), 14, 2) == []
        assert ind.latest(ind.gaussian_filter(D(range(10)), 14, 2)) == 0

    def test_non_positive_window_rejected(self):
        with pytest.raises(ValueError):
            ind.rsi(D([1, 2, 3]), 0)
        with pytest.raises(ValueError):
            ind.gaussian_filter(D([1, 2, 3]), 2, 0)


class TestRSI:
    def test_alternating_moves_give_fifty(self):
        assert ind.rsi(D([10, 11, 10, 11, 10]), 4) == 50

    def test_averages_n_changes(self):
        # 15 closes -> 14 changes: 7 up, 7 down
        assert ind.rsi(D([10, 11] * 7 + [10]), 14) == 50

    def test_pinned_value_over_fourteen_changes(self):
        # +2 / -1 alternating: avg gain 1, avg loss 0.5 -> RS 2
        px = [10]
        for _ in range(7):
            px += [px[-1] + 2, px[-1] + 1]
        v = ind.rsi(D(px), 14)
        assert float(v) == pytest.approx(100 - 100 / 3)

    def test_needs_n_plus_one_closes(self):
        assert ind.rsi(D([10, 11] * 7), 14) == 0
        assert ind.rsi(D([10, 11] * 7 + [12]), 14) > 0

    def test_only_gains_gives_hundred(self):
        assert ind.rsi(D(range(100, 120)), 14) == 100

    def test_only_losses_gives_zero(self):
        assert ind.rsi(D(range(120, 100, -1)), 14) == 0

    def test_flat_window_is_midpoint(self):
        assert ind.rsi(D([5] * 15), 14) == 50

    def test_bounded_on_random_walks(self):
        rng = random.Random(7)
        for _ in range(50):
            px = [100.0]
            for _ in range(40):
                px.append(max(1.0, px[-1] + rng.uniform(-3, 3)))
            v = ind.rsi(D(round(p, 4) for p in px), 14)
            assert Decimal(0) <= v <= Decimal(100)


class TestLSMA:
    def test_linear_series_returns_last_point(self):
        assert ind.lsma(D(range(100, 120)), 14) == 119

    def test_regression_value(self):
        # slope 2, intercept 0 -> value 8 at x=4
        assert ind.lsma(D([1, 2, 3, 4, 10]), 5) == 8

    def test_uses_only_last_n(self):
        assert ind.lsma(D([1000, 1, 2, 3, 4, 10]), 5) == 8


class TestVolatilityAndZScore:
    def test_constant_growth_has_zero_volatility(self):
        assert ind.volatility(D([100, 110, 121, "133.1"]), 4) == 0

    def test_volatility_positive_for_noisy_series(self):
        assert ind.volatility(D([100, 105, 98, 103, 99, 104, 97]), 7) > 0

    def test_short_window_only_looks_at_recent_returns(self):
        noisy_then_calm = D([100, 130, 90, 120] + [100] * 7)
        assert ind.volatility(noisy_then_calm, 7) == 0
        assert ind.volatility(noisy_then_calm, 11) > 0

    def test_zscore(self):
        z = ind.zscore(D([1, 2, 3, 4, 5]), 5)
        assert float(z) == pytest.approx(math.sqrt(2))

    def test_zscore_constant_is_zero(self):
        assert ind.zscore(D([7] * 14), 14) == 0


class TestGaussianFilter:
    def test_same_length_as_input(self):
        px = D(range(100, 130))
        assert len(ind.gaussian_filter(px, 14, 2)) == len(px)

    def test_constant_input_passes_through(self):
        out = ind.gaussian_filter(D([50] * 30), 14, 2)
        assert all(abs(v - 50) < Decimal("1e-20") for v in out)

    @pytest.mark.parametrize("poles", [1, 2, 3, 4])
    def test_lags_a_rising_ramp(self, poles):
        px = D(range(100, 130))
        out = ind.gaussian_filter(px, 14, poles)
        assert out[-1] < px[-1]
        assert out[-1] > px[0]

    def test_lsma_above_filter_on_ramp(self):
        px = D(range(100, 115))
        assert ind.lsma(px, 14) > ind.latest(ind.gaussian_filter(px, 14, 2))


class TestADX:
    def test_steady_uptrend_is_fully_directional(self):
        highs = D(i + 1 for i in range(30))
        lows = D(range(30))
        closes = D(i + 0.5 for i in range(30))
        assert ind.adx(highs, lows, closes, 14) == 100

    def test_no_range_is_zero(self):
        flat = D([10] * 30)
        assert ind.adx(flat, flat, flat, 14) == 0

    def test_needs_n_plus_one_bars(self):
        highs = D(i + 1 for i in range(14))
        lows = D(range(14))
        assert ind.adx(highs, lows, lows, 14) == 0
        assert ind.adx(highs + D([15]), lows + D([14]), lows + D([14]), 14) > 0

    def test_bounded(self):
        rng = random.Random(3)
        closes = [100.0]
        for _ in range(60):
            closes.append(closes[-1] + rng.uniform(-2, 2))
        highs = D(round(c + rng.uniform(0, 1), 4) for c in closes)
        lows = D(round(c - rng.uniform(0, 1), 4) for c in closes)
        v = ind.adx(highs, lows, D(round(c, 4) for c in closes), 14)
        assert 0 <= v <= 100


class TestTEMA:
    def test_constant_series(self):
        assert ind.tema(D([42] * 20), 14) == 42

    def test_previous_is_tema_without_last_point(self):
        px = D([100, 101, 99, 103, 104, 102, 105, 107, 106, 108, 110, 109, 111, 113, 112, 115])
        assert ind.previous_tema(px, 14) == ind.tema(px[:-1], 14)

    def test_rising_ramp_slopes_up(self):
        px = D(range(100, 130))
        assert ind.tema(px, 14) > ind.previous_tema(px, 14)

    def test_previous_needs_one_extra_bar(self):
        assert ind.previous_tema(D(range(14)), 14) == 0


class TestSnapshot:
    def test_compute_snapshot_fields(self):
        px = D(range(100, 120))
        highs = [p + 1 for p in px]
        lows = [p - 1 for p in px]
        snap = ind.compute_snapshot(px, highs, lows, IndicatorConfig())
        assert isinstance(snap, IndicatorSnapshot)
        assert snap.lsma == 119
        assert snap.rsi == 100
        assert snap.gaussian < snap.lsma
        assert snap.vol_short > 0 and snap.vol_long > 0

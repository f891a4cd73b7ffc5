from datetime import date, timedelta
from decimal import Decimal

import pytest

from ta_ls.types import PriceBar


def _bars(closes, start=date(2020, 1, 1), volume=1_000_000_000, spread=Decimal("0.5")):
    out = []
    for i, c in enumerate(closes):
        c = Decimal(str(c))
        out.append(
            PriceBar(
                date=start + timedelta(days=i),
                open=c,
                high=c + spread,
                low=c - spread,
                close=c,
                adj_close=c,
                volume=volume,
            )
        )
    return out


@pytest.fixture
def make_history():
    """Factory: closes -> list[PriceBar] (high/low = close +/- spread)."""
    return _bars


@pytest.fixture
def rising_history():
    # 20 bars, constant +1 steps: 100 .. 119
    return _bars(range(100, 120))


@pytest.fixture
def falling_history():
    # 22 bars: 200 .. 179
    return _bars(range(200, 178, -1))

"""Shared types.

The guiding principle is to keep the runtime objects small and explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import IntEnum
from typing import Sequence


@dataclass(frozen=True)
class PriceBar:
    """Daily OHLCV bar.

    Prices are Decimal so capital arithmetic stays exact; volume is whole shares.
    """

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    adj_close: Decimal
    volume: int


# Chronological bars of one instrument.
PriceHistory = Sequence[PriceBar]


class Position(IntEnum):
    SHORT = -1
    FLAT = 0
    LONG = 1


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Every indicator value computed for one simulation step."""

    vol_long: Decimal
    vol_short: Decimal
    rsi: Decimal
    lsma: Decimal
    gaussian: Decimal
    adx: Decimal
    zscore: Decimal
    tema: Decimal
    tema_prev: Decimal


@dataclass(frozen=True)
class TradeEvent:
    """A single executed fill (entry/exit/cover).

    Transitions that move no shares (e.g. a short entry with nothing held, or
    a zero-volume bar) change the position state but are not logged.
    """

    date: date
    symbol: str
    side: str  # 'BUY'/'SELL'
    reason: str
    price: Decimal
    qty: int
    capital_after: Decimal
    shares_after: int
    position_after: int  # -1/0/+1

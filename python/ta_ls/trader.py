"""Single-instrument trader.

Walks one price history bar by bar:
- computes indicators on the trailing window ending at the current bar
- FLAT: evaluates entry; otherwise evaluates the +/- band exit
- fills at the execution price, capped by available capital and bar volume
- records capital + shares * price as this instrument's value for the day
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import List, Optional

import pandas as pd

from .config import BacktestConfig, IndicatorConfig, StrategyConfig
from .exceptions import InvalidPriceData
from .indicators import compute_snapshot
from .numeric import ZERO, decimal_context, floor_int, to_decimal
from .strategy import PositionState
from .types import IndicatorSnapshot, Position, PriceBar, PriceHistory, TradeEvent

logger = logging.getLogger(__name__)

_PRICE_FIELDS = ("open", "high", "low", "close", "adj_close")


def validate_history(symbol: str, history: PriceHistory) -> None:
    """Raise InvalidPriceData on the first non-positive price or negative volume."""
    for bar in history:
        for name in _PRICE_FIELDS:
            px = getattr(bar, name)
            if not px.is_finite() or px <= 0:
                raise InvalidPriceData(symbol, bar.date, name, px)
        if bar.volume < 0:
            raise InvalidPriceData(symbol, bar.date, "volume", bar.volume)


@dataclass
class CapitalLedger:
    """Cash and whole-share holdings of one instrument."""

    capital: Decimal
    shares: int = 0

    def value(self, price: Decimal) -> Decimal:
        return self.capital + price * self.shares

    def affordable(self, price: Decimal, volume: int) -> int:
        return min(floor_int(self.capital / price), volume)

    def buy(self, qty: int, price: Decimal) -> None:
        cost = price * qty
        if qty < 0 or cost > self.capital:
            raise ValueError(f"cannot buy {qty} @ {price} with capital {self.capital}")
        self.capital -= cost
        self.shares += qty

    def sell(self, qty: int, price: Decimal) -> None:
        if qty < 0 or qty > self.shares:
            raise ValueError(f"cannot sell {qty} of {self.shares} shares")
        self.capital += price * qty
        self.shares -= qty


@dataclass(frozen=True)
class InstrumentResult:
    symbol: str
    values: List[Decimal]
    trades: List[TradeEvent]
    final_capital: Decimal
    final_shares: int


class InstrumentTrader:
    """Simulates the long/short strategy on one instrument."""

    def __init__(
        self,
        symbol: str,
        history: PriceHistory,
        capital: Decimal,
        ind_cfg: IndicatorConfig = IndicatorConfig(),
        strat_cfg: StrategyConfig = StrategyConfig(),
        bt_cfg: BacktestConfig = BacktestConfig(),
    ):
        self.symbol = symbol
        self.history = history
        self.ind_cfg = ind_cfg
        self.bt_cfg = bt_cfg

        self.ledger = CapitalLedger(capital=to_decimal(capital))
        self.state = PositionState.from_config(strat_cfg)

        self.values: List[Decimal] = []
        self.trade_log: List[TradeEvent] = []
        self.indicator_log: List[tuple] = []

        self._closes: List[Decimal] = [b.close for b in history]
        self._highs: List[Decimal] = [b.high for b in history]
        self._lows: List[Decimal] = [b.low for b in history]

    # ---------- public API ----------

    def run(self) -> InstrumentResult:
        """Run the full history; raises InvalidPriceData before any step."""
        validate_history(self.symbol, self.history)
        lookback = self.ind_cfg.lookback
        logger.info("%s: simulating %d bars (%d tradable)", self.symbol, len(self.history), max(0, len(self.history) - lookback))
        for t in range(lookback, len(self.history)):
            self.step(t)
        logger.info(
            "%s: done, %d trades, capital=%s shares=%d",
            self.symbol, len(self.trade_log), self.ledger.capital, self.ledger.shares,
        )
        return InstrumentResult(
            symbol=self.symbol,
            values=list(self.values),
            trades=list(self.trade_log),
            final_capital=self.ledger.capital,
            final_shares=self.ledger.shares,
        )

    @decimal_context
    def step(self, t: int) -> None:
        """Process bar index t (t >= lookback)."""
        bar = self.history[t]
        snap = self._snapshot(t)
        if self.bt_cfg.record_indicators:
            self.indicator_log.append((bar.date, snap))
        logger.debug("%s %s: %s", self.symbol, bar.date, snap)

        price = self._execution_price(bar)
        if self.state.is_flat:
            side = self.state.evaluate_entry(bar.close, snap.gaussian, snap.lsma)
            if side == Position.LONG:
                qty = self.ledger.affordable(price, bar.volume)
                self._fill(bar, "BUY", qty, price, reason="LongEntry")
            elif side == Position.SHORT:
                # Shorting sells from existing holdings; the balance never goes negative.
                qty = min(self.ledger.shares, bar.volume)
                self._fill(bar, "SELL", qty, price, reason="ShortEntry")
        elif self.state.should_exit(bar.close):
            closed = self.state.exit()
            if closed == Position.LONG:
                self._fill(bar, "SELL", self.ledger.shares, price, reason="LongExit")
            else:
                qty = self.ledger.affordable(price, bar.volume)
                self._fill(bar, "BUY", qty, price, reason="ShortCover")

        index = t - self.ind_cfg.lookback
        if index != len(self.values):
            raise RuntimeError(f"{self.symbol}: out-of-order step {t}")
        self.values.append(self.ledger.value(price))

    def indicators_frame(self) -> pd.DataFrame:
        """Recorded indicator snapshots (requires record_indicators)."""
        rows = [dict(date=d, **{k: float(v) for k, v in asdict(s).items()}) for d, s in self.indicator_log]
        if not rows:
            return pd.DataFrame(columns=["date"] + list(IndicatorSnapshot.__dataclass_fields__))
        return pd.DataFrame(rows).set_index("date")

    # ---------- internal helpers ----------

    def _snapshot(self, t: int) -> IndicatorSnapshot:
        start = max(0, t + 1 - self.ind_cfg.window_span)
        return compute_snapshot(
            self._closes[start:t + 1],
            self._highs[start:t + 1],
            self._lows[start:t + 1],
            self.ind_cfg,
        )

    def _execution_price(self, bar: PriceBar) -> Decimal:
        return bar.adj_close if self.bt_cfg.execution_price == "adj_close" else bar.close

    def _fill(self, bar: PriceBar, side: str, qty: int, price: Decimal, reason: str) -> Optional[TradeEvent]:
        # the state transition stands; an empty fill is not a trade
        if qty == 0:
            logger.debug("%s %s: %s with nothing to fill", self.symbol, bar.date, reason)
            return None
        if side == "BUY":
            self.ledger.buy(qty, price)
        else:
            self.ledger.sell(qty, price)

        ev = TradeEvent(
            date=bar.date,
            symbol=self.symbol,
            side=side,
            reason=reason,
            price=price,
            qty=int(qty),
            capital_after=self.ledger.capital,
            shares_after=self.ledger.shares,
            position_after=int(self.state.position),
        )
        self.trade_log.append(ev)
        logger.debug("%s %s: %s %s %d @ %s", self.symbol, bar.date, reason, side, qty, price)
        return ev


def trades_to_frame(trades: List[TradeEvent]) -> pd.DataFrame:
    cols = list(TradeEvent.__dataclass_fields__)
    if not trades:
        return pd.DataFrame(columns=cols)
    df = pd.DataFrame([asdict(x) for x in trades], columns=cols)
    for c in ("price", "capital_after"):
        df[c] = df[c].astype(float)
    return df

"""Backtest runner: simulates every instrument and merges their value series."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .config import BacktestConfig, IndicatorConfig, StrategyConfig
from .data_provider import PanelCsvProvider
from .exceptions import InvalidPriceData
from .metrics import PerformanceSummary, summarize
from .numeric import DECIMAL_CTX, ZERO, decimal_context, to_decimal
from .trader import InstrumentResult, InstrumentTrader, trades_to_frame
from .types import PriceHistory, TradeEvent

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    initial_capital: Decimal
    portfolio_values: List[Decimal]
    instruments: Dict[str, InstrumentResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    periods_per_year: int = 252
    # seed capital of failed instruments, carried as cash on every day
    idle_capital: Decimal = ZERO

    def summary(self) -> PerformanceSummary:
        """Raises InsufficientDataError when fewer than 2 days were simulated."""
        return summarize(self.portfolio_values, self.initial_capital, self.periods_per_year)

    @property
    def trades(self) -> List[TradeEvent]:
        out: List[TradeEvent] = []
        for res in self.instruments.values():
            out.extend(res.trades)
        return out

    def to_frame(self) -> pd.DataFrame:
        """Per-instrument and total value per day-index (floats)."""
        df = pd.DataFrame(
            {sym: pd.Series([float(v) for v in res.values], dtype=float) for sym, res in self.instruments.items()}
        )
        df = df.reindex(range(len(self.portfolio_values)))
        if self.idle_capital:
            df["Idle"] = float(self.idle_capital)
        df["Total"] = [float(v) for v in self.portfolio_values]
        df.index.name = "Day"
        return df

    def trades_frame(self) -> pd.DataFrame:
        return trades_to_frame(self.trades)


@decimal_context
def aggregate_series(series: Sequence[Sequence[Decimal]], cash: Decimal = ZERO) -> List[Decimal]:
    """Element-wise sum; shorter series only contribute to the days they cover.

    ``cash`` is added to every day (capital that never got invested).
    """
    length = max((len(s) for s in series), default=0)
    total = [cash] * length
    for s in series:
        for i, v in enumerate(s):
            total[i] += v
    return total


def _simulate(
    symbol: str,
    history: PriceHistory,
    capital: Decimal,
    ind_cfg: IndicatorConfig,
    strat_cfg: StrategyConfig,
    bt_cfg: BacktestConfig,
) -> InstrumentResult:
    return InstrumentTrader(symbol, history, capital, ind_cfg, strat_cfg, bt_cfg).run()


def run_backtest(
    histories: Mapping[str, PriceHistory],
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    strat_cfg: StrategyConfig = StrategyConfig(),
    bt_cfg: BacktestConfig = BacktestConfig(),
) -> BacktestResult:
    """Simulate every instrument independently, then sum their value series.

    Capital is split equally across all instruments up front. An instrument
    with invalid prices is recorded in ``failures`` and its seed capital is
    held as idle cash for the whole run; the others still run.
    """
    if not histories:
        raise ValueError("no instruments to simulate")

    symbols = list(histories)
    initial = to_decimal(bt_cfg.initial_capital)
    with localcontext(DECIMAL_CTX):
        per_instrument = initial / len(symbols)
    logger.info("Simulation started: %d instruments, %s each", len(symbols), per_instrument)

    results: Dict[str, InstrumentResult] = {}
    failures: Dict[str, str] = {}

    if bt_cfg.max_workers > 1 and len(symbols) > 1:
        with ProcessPoolExecutor(max_workers=bt_cfg.max_workers) as pool:
            futures = {
                sym: pool.submit(_simulate, sym, histories[sym], per_instrument, ind_cfg, strat_cfg, bt_cfg)
                for sym in symbols
            }
            for sym in symbols:
                try:
                    results[sym] = futures[sym].result()
                except InvalidPriceData as e:
                    logger.warning("Skipping %s: %s", sym, e)
                    failures[sym] = str(e)
    else:
        for sym in symbols:
            logger.info("Processing %s", sym)
            try:
                results[sym] = _simulate(sym, histories[sym], per_instrument, ind_cfg, strat_cfg, bt_cfg)
            except InvalidPriceData as e:
                logger.warning("Skipping %s: %s", sym, e)
                failures[sym] = str(e)

    idle = per_instrument * len(failures) if failures else ZERO
    portfolio = aggregate_series([results[s].values for s in symbols if s in results], cash=idle)
    logger.info("Simulation complete: %d days, %d failed instruments", len(portfolio), len(failures))
    return BacktestResult(
        initial_capital=initial,
        portfolio_values=portfolio,
        instruments=results,
        failures=failures,
        periods_per_year=bt_cfg.periods_per_year,
        idle_capital=idle,
    )


def run_from_panel_csv(
    csv_path: str | Path,
    symbols: Optional[Sequence[str]] = None,
    output_dir: Optional[str | Path] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    strat_cfg: StrategyConfig = StrategyConfig(),
    bt_cfg: BacktestConfig = BacktestConfig(),
) -> BacktestResult:
    """Convenience runner: load a panel CSV, backtest, optionally write CSVs."""
    histories = PanelCsvProvider().fetch(csv_path, symbols=symbols, start=start, end=end)
    result = run_backtest(histories, ind_cfg, strat_cfg, bt_cfg)

    if output_dir is not None:
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        result.to_frame().to_csv(out_dir / "portfolio_values.csv", encoding="utf-8")
        result.trades_frame().to_csv(out_dir / "trades.csv", index=False, encoding="utf-8")
    return result

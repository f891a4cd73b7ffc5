"""Run the long/short backtest over a panel CSV and print the report.

Example:
    python -m scripts.run_backtest \
      --panel_csv stock_data/consolidated_stock_data.csv \
      --start 2015-01-01 --end 2019-12-31 --output_dir outputs
"""

from __future__ import annotations

import argparse
import logging
import math
import sys

from ta_ls.backtest import run_from_panel_csv
from ta_ls.config import BacktestConfig, IndicatorConfig, StrategyConfig
from ta_ls.exceptions import InsufficientDataError


def _fmt(x: float, spec: str) -> str:
    return "undefined" if math.isnan(x) else format(x, spec)


def main() -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--panel_csv", type=str, required=True, help="Panel CSV (Date,Ticker,Open,High,Low,Close,Adj Close,Volume).")
    p.add_argument("--symbols", type=str, nargs="*", default=None, help="Restrict to these tickers.")
    p.add_argument("--start", type=str, default=None)
    p.add_argument("--end", type=str, default=None)
    p.add_argument("--initial_capital", type=float, default=1_000_000.0)
    p.add_argument("--lookback", type=int, default=14)
    p.add_argument("--short_vol_window", type=int, default=7)
    p.add_argument("--gaussian_poles", type=int, default=2)
    p.add_argument("--exit_band", type=float, default=0.03, help="Exit band around the entry price. Default 0.03.")
    p.add_argument("--max_workers", type=int, default=1)
    p.add_argument("--output_dir", type=str, default=None, help="Write portfolio_values.csv / trades.csv here.")
    p.add_argument("--log_level", type=str, default="INFO")
    args = p.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ind_cfg = IndicatorConfig(
        lookback=args.lookback,
        short_vol_window=args.short_vol_window,
        gaussian_poles=args.gaussian_poles,
        window_span=max(4 * args.lookback, args.lookback + 1),
    )
    strat_cfg = StrategyConfig(exit_band=args.exit_band)
    bt_cfg = BacktestConfig(initial_capital=args.initial_capital, max_workers=args.max_workers)

    result = run_from_panel_csv(
        args.panel_csv,
        symbols=args.symbols,
        output_dir=args.output_dir,
        start=args.start,
        end=args.end,
        ind_cfg=ind_cfg,
        strat_cfg=strat_cfg,
        bt_cfg=bt_cfg,
    )
    for sym, reason in result.failures.items():
        print(f"Skipped {sym}: {reason}")

    try:
        s = result.summary().as_dict()
    except InsufficientDataError as e:
        print(f"Backtest report unavailable: {e}", file=sys.stderr)
        return 1

    print("Backtest Results:")
    print(f"Initial Capital: ${s['initial_capital']:.2f}")
    print(f"Final Capital: ${s['final_capital']:.2f}")
    print(f"Max Drawdown: {_fmt(s['max_drawdown_pct'], '.2f')}%")
    print(f"Annualized Sharpe Ratio: {_fmt(s['sharpe_ratio'], '.6f')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Adapters from pandas OHLCV frames / panel CSV files to price histories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .numeric import to_decimal
from .types import PriceBar

logger = logging.getLogger(__name__)

_REQUIRED = ["Open", "High", "Low", "Close", "AdjClose", "Volume"]


def _standardize_ohlcv_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename_map = {}
    for col in df.columns:
        c = str(col).strip().lower().replace("_", " ")
        if c == "open":
            rename_map[col] = "Open"
        elif c == "high":
            rename_map[col] = "High"
        elif c == "low":
            rename_map[col] = "Low"
        elif c == "close":
            rename_map[col] = "Close"
        elif c in {"adj close", "adjclose"}:
            rename_map[col] = "AdjClose"
        elif c == "volume":
            rename_map[col] = "Volume"
    df = df.rename(columns=rename_map).copy()

    # Without an adjusted close, trade at the raw close.
    if "AdjClose" not in df.columns and "Close" in df.columns:
        df["AdjClose"] = df["Close"]

    missing = [c for c in _REQUIRED if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required OHLCV columns: {missing}")

    df = df[_REQUIRED].astype(float)
    df = df[~df.index.duplicated(keep="last")].sort_index()
    return df


def history_from_frame(df: pd.DataFrame, symbol: str = "") -> List[PriceBar]:
    """Convert a date-indexed OHLCV frame into PriceBars.

    Rows with non-finite values are dropped (logged); non-positive prices are
    kept so the trader can reject the instrument explicitly.
    """
    df = _standardize_ohlcv_columns(df)
    finite = np.isfinite(df.to_numpy()).all(axis=1)
    if not finite.all():
        logger.warning("%s: dropping %d rows with missing values", symbol or "<frame>", int((~finite).sum()))
        df = df[finite]

    bars = []
    for ts, row in zip(pd.to_datetime(df.index), df.itertuples(index=False)):
        bars.append(
            PriceBar(
                date=ts.date(),
                open=to_decimal(row.Open),
                high=to_decimal(row.High),
                low=to_decimal(row.Low),
                close=to_decimal(row.Close),
                adj_close=to_decimal(row.AdjClose),
                volume=int(row.Volume),
            )
        )
    return bars


class PanelCsvProvider:
    """Load a panel CSV in the format: Date,Ticker,Open,High,Low,Close,(Adj Close),Volume."""

    def fetch(
        self,
        panel_csv_path: str | Path,
        symbols: Optional[Sequence[str]] = None,
        start: str | None = None,
        end: str | None = None,
    ) -> Dict[str, List[PriceBar]]:
        path = Path(panel_csv_path)
        if not path.exists():
            raise FileNotFoundError(str(path))
        df = pd.read_csv(path)
        return self.split(df, symbols=symbols, start=start, end=end)

    def split(
        self,
        df: pd.DataFrame,
        symbols: Optional[Sequence[str]] = None,
        start: str | None = None,
        end: str | None = None,
    ) -> Dict[str, List[PriceBar]]:
        """Group a long-format panel frame into one history per ticker."""
        cols = {c.lower(): c for c in df.columns}
        date_col = cols.get("date") or cols.get("time")
        ticker_col = cols.get("ticker") or cols.get("symbol")
        if date_col is None or ticker_col is None:
            raise ValueError("Panel CSV must have Date and Ticker columns.")

        df = df.copy()
        df[date_col] = pd.to_datetime(df[date_col])
        df[ticker_col] = df[ticker_col].astype(str).str.strip()
        if symbols:
            df = df[df[ticker_col].isin([str(s) for s in symbols])]
        if start:
            df = df[df[date_col] >= pd.to_datetime(start)]
        if end:
            df = df[df[date_col] <= pd.to_datetime(end)]

        out: Dict[str, List[PriceBar]] = {}
        for ticker, g in df.groupby(ticker_col, sort=True):
            frame = g.drop(columns=[ticker_col]).set_index(date_col)
            out[str(ticker)] = history_from_frame(frame, symbol=str(ticker))
        logger.info("Loaded %d instruments", len(out))
        return out

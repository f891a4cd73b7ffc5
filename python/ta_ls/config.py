"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator window configuration."""

    # Longest indicator window; also the number of bars skipped before trading.
    lookback: int = 14
    short_vol_window: int = 7
    gaussian_poles: int = 2

    # Bars handed to the recursive indicators (Gaussian filter, TEMA, ADX).
    window_span: int = 56

    def __post_init__(self) -> None:
        if self.lookback <= 0 or self.short_vol_window <= 0:
            raise ValueError("indicator windows must be positive")
        if self.gaussian_poles <= 0:
            raise ValueError("gaussian_poles must be positive")
        if self.window_span < self.lookback + 1:
            raise ValueError("window_span must cover at least lookback + 1 bars")


@dataclass(frozen=True)
class StrategyConfig:
    """Entry/exit parameters."""

    # Symmetric exit band around the entry price (0.03 -> +/-3%).
    exit_band: float = 0.03

    def __post_init__(self) -> None:
        if not 0.0 < self.exit_band < 1.0:
            raise ValueError("exit_band must be in (0, 1)")

    @classmethod
    def from_params_dict(cls, d: dict) -> "StrategyConfig":
        """Create StrategyConfig from a params dict.

        Keys may be PascalCase (e.g., ExitBand) or snake_case. Unknown keys are ignored.
        """
        mapping = {
            "ExitBand": "exit_band",
            "exit_band": "exit_band",
        }
        kwargs = {}
        for k, v in (d or {}).items():
            if k in mapping:
                kwargs[mapping[k]] = float(v)
        return cls(**kwargs)


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration.

    Notes:
    - `initial_capital` is split equally across every instrument handed to the
      run and never rebalanced.
    - Decisions use the bar close; fills and valuation use `execution_price`
      ("adj_close" or "close").
    """

    initial_capital: float = 1_000_000.0
    execution_price: str = "adj_close"
    periods_per_year: int = 252

    # >1 simulates instruments in worker processes.
    max_workers: int = 1

    # Keep per-step indicator snapshots on each trader (diagnostics only).
    record_indicators: bool = False

    def __post_init__(self) -> None:
        if self.initial_capital <= 0:
            raise ValueError("initial_capital must be positive")
        if self.execution_price not in ("adj_close", "close"):
            raise ValueError(f"unknown execution_price: {self.execution_price!r}")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

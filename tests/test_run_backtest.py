import sys

import pandas as pd
import pytest

from scripts import run_backtest as cli


def _write_panel(path, closes_by_ticker, n_days):
    rows = []
    for i, d in enumerate(pd.bdate_range("2021-01-01", periods=n_days)):
        for ticker, closes in closes_by_ticker.items():
            c = closes[i]
            rows.append({"Date": d.strftime("%Y-%m-%d"), "Ticker": ticker, "Open": c, "High": c + 1, "Low": c - 1,
                         "Close": c, "Adj Close": c, "Volume": 10_000})
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


@pytest.fixture
def run_cli(monkeypatch):
    def _run(*args):
        monkeypatch.setattr(sys, "argv", ["run_backtest", *map(str, args)])
        return cli.main()
    return _run


class TestMain:
    def test_flat_market_reports_undefined_sharpe(self, tmp_path, run_cli, capsys):
        csv = _write_panel(tmp_path / "panel.csv", {"AAA": [100] * 20, "BBB": [50] * 20}, 20)
        assert run_cli("--panel_csv", csv, "--initial_capital", 1000) == 0

        out = capsys.readouterr().out
        assert "Backtest Results:" in out
        assert "Initial Capital: $1000.00" in out
        assert "Final Capital: $1000.00" in out
        assert "Max Drawdown: 0.00%" in out
        assert "Annualized Sharpe Ratio: undefined" in out

    def test_writes_output_csvs(self, tmp_path, run_cli):
        csv = _write_panel(tmp_path / "panel.csv", {"AAA": list(range(100, 120))}, 20)
        out_dir = tmp_path / "out"
        assert run_cli("--panel_csv", csv, "--output_dir", out_dir) == 0

        values = pd.read_csv(out_dir / "portfolio_values.csv")
        assert len(values) == 6
        trades = pd.read_csv(out_dir / "trades.csv")
        assert list(trades["reason"][:2]) == ["LongEntry", "LongExit"]

    def test_single_day_exits_with_error(self, tmp_path, run_cli, capsys):
        # lookback 14 + 1 bar -> one portfolio value, too few for a report
        csv = _write_panel(tmp_path / "panel.csv", {"AAA": list(range(100, 115))}, 15)
        assert run_cli("--panel_csv", csv) == 1

        captured = capsys.readouterr()
        assert "Backtest report unavailable" in captured.err
        assert "Backtest Results:" not in captured.out

    def test_skipped_instrument_is_listed(self, tmp_path, run_cli, capsys):
        csv = _write_panel(tmp_path / "panel.csv", {"AAA": [100] * 20, "BAD": [10] * 10 + [0] + [10] * 9}, 20)
        assert run_cli("--panel_csv", csv) == 0

        out = capsys.readouterr().out
        assert "Skipped BAD:" in out
        assert "Final Capital: $1000000.00" in out

    def test_panel_csv_is_required(self, run_cli):
        with pytest.raises(SystemExit):
            run_cli()

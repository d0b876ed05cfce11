"""Tests for analytics.performance."""
import pytest

from analytics.performance import (
    closed_trades,
    compute_metrics,
    daily_rollups,
    max_drawdown,
    sharpe_ratio,
    summarize,
)
from helpers import make_trade


def _closed(profit, exit_date="2024-01-05", **kw):
    return make_trade(exit_price=150.0 + profit / 10, exit_date=exit_date, profit=profit, **kw)


def test_open_trades_are_ignored():
    trades = [make_trade(), _closed(100.0)]
    assert len(closed_trades(trades)) == 1


def test_compute_metrics_basic():
    trades = [_closed(100.0), _closed(-50.0), _closed(50.0), make_trade()]
    m = compute_metrics(trades, "2024-01-05")
    assert m.date == "2024-01-05"
    assert m.total_trades == 3
    assert m.winning_trades == 2
    assert m.losing_trades == 1
    assert m.total_profit == 150.0
    assert m.total_loss == 50.0
    assert m.win_rate == pytest.approx(66.666, rel=1e-3)
    assert m.profit_factor == pytest.approx(3.0)
    assert m.average_win == 75.0
    assert m.average_loss == 50.0


def test_no_losses_gives_zero_profit_factor():
    m = compute_metrics([_closed(10.0), _closed(20.0)], "2024-01-05")
    assert m.profit_factor == 0.0
    assert m.average_loss == 0.0


def test_empty_metrics():
    m = compute_metrics([], "2024-01-05")
    assert m.total_trades == 0
    assert m.win_rate == 0.0
    assert m.sharpe_ratio == 0.0


def test_breakeven_trade_is_neither_win_nor_loss():
    m = compute_metrics([_closed(0.0)], "2024-01-05")
    assert m.total_trades == 1
    assert m.winning_trades == 0
    assert m.losing_trades == 0


def test_max_drawdown():
    assert max_drawdown([100.0, -30.0, -40.0, 50.0, -10.0]) == 70.0
    assert max_drawdown([10.0, 20.0]) == 0.0
    assert max_drawdown([-25.0]) == 25.0


def test_sharpe_ratio():
    assert sharpe_ratio([]) == 0.0
    assert sharpe_ratio([5.0, 5.0]) == 0.0
    # mean 1, population stdev 1
    assert sharpe_ratio([0.0, 2.0]) == pytest.approx(1.0)


def test_drawdown_uses_exit_order():
    trades = [
        _closed(-40.0, exit_date="2024-01-03"),
        _closed(100.0, exit_date="2024-01-01"),
    ]
    m = compute_metrics(trades, "2024-01-03")
    assert m.max_drawdown == 40.0


def test_daily_rollups_group_by_exit_day():
    trades = [
        _closed(100.0, exit_date="2024-01-05T15:00:00"),
        _closed(-20.0, exit_date="2024-01-05T16:00:00"),
        _closed(30.0, exit_date="2024-01-06"),
        make_trade(),
    ]
    rollups = daily_rollups(trades)
    assert [m.date for m in rollups] == ["2024-01-05", "2024-01-06"]
    assert rollups[0].total_trades == 2
    assert rollups[1].total_trades == 1


def test_summarize():
    trades = [
        make_trade(id="open"),
        _closed(100.0, id="best"),
        _closed(-40.0, id="worst"),
    ]
    summary = summarize(trades)
    assert summary["total_trades"] == 3
    assert summary["open_trades"] == 1
    assert summary["closed_trades"] == 2
    assert summary["net_profit"] == 60.0
    assert summary["win_rate"] == 50.0
    assert summary["best_trade"] == "best"
    assert summary["worst_trade"] == "worst"


def test_summarize_empty():
    summary = summarize([])
    assert summary["total_trades"] == 0
    assert summary["best_trade"] is None

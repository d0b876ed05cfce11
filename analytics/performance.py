"""Trade statistics: win rate, profit factor, drawdown and friends."""
import math
from collections import defaultdict
from typing import Iterable, Optional

from shared.schemas import PerformanceMetric, Trade


def closed_trades(trades: Iterable[Trade]) -> list[Trade]:
    return [t for t in trades if t.is_closed]


def max_drawdown(profits: list[float]) -> float:
    """Largest peak-to-trough fall of the cumulative P&L curve."""
    peak = 0.0
    running = 0.0
    worst = 0.0
    for p in profits:
        running += p
        peak = max(peak, running)
        worst = max(worst, peak - running)
    return worst


def sharpe_ratio(profits: list[float]) -> float:
    """Per-trade mean over population standard deviation (no risk-free rate)."""
    if not profits:
        return 0.0
    mean = sum(profits) / len(profits)
    variance = sum((p - mean) ** 2 for p in profits) / len(profits)
    if variance <= 0:
        return 0.0
    return mean / math.sqrt(variance)


def compute_metrics(
    trades: Iterable[Trade], date: str, user_id: Optional[str] = None
) -> PerformanceMetric:
    """Roll closed trades up into one PerformanceMetric for ``date``."""
    closed = sorted(closed_trades(trades), key=lambda t: t.exit_date or t.entry_date)
    profits = [t.profit for t in closed]
    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]

    total_profit = sum(wins)
    total_loss = abs(sum(losses))

    return PerformanceMetric(
        user_id=user_id,
        date=date,
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        total_profit=total_profit,
        total_loss=total_loss,
        win_rate=(len(wins) / len(closed) * 100) if closed else 0.0,
        profit_factor=(total_profit / total_loss) if total_loss > 0 else 0.0,
        average_win=(total_profit / len(wins)) if wins else 0.0,
        average_loss=(total_loss / len(losses)) if losses else 0.0,
        max_drawdown=max_drawdown(profits),
        sharpe_ratio=sharpe_ratio(profits),
    )


def daily_rollups(trades: Iterable[Trade], user_id: Optional[str] = None) -> list[PerformanceMetric]:
    """One metric per exit day, each covering only that day's closed trades."""
    by_day: dict[str, list[Trade]] = defaultdict(list)
    for t in closed_trades(trades):
        by_day[t.exit_date[:10]].append(t)
    return [compute_metrics(day_trades, day, user_id) for day, day_trades in sorted(by_day.items())]


def summarize(trades: Iterable[Trade]) -> dict:
    """Dashboard summary over a trade list."""
    trades = list(trades)
    closed = closed_trades(trades)
    open_count = sum(1 for t in trades if t.is_open)
    wins = [t for t in closed if t.profit > 0]
    best = max(closed, key=lambda t: t.profit, default=None)
    worst = min(closed, key=lambda t: t.profit, default=None)
    return {
        "total_trades": len(trades),
        "open_trades": open_count,
        "closed_trades": len(closed),
        "net_profit": sum(t.profit for t in closed),
        "win_rate": (len(wins) / len(closed) * 100) if closed else 0.0,
        "best_trade": best.id if best else None,
        "worst_trade": worst.id if worst else None,
    }

import math
from typing import Dict, List, Tuple

from src.core.entities.analytics import AnalyticsSummary
from src.core.entities.trade import Trade
from src.core.use_cases.calendar import day_key, minutes_between, to_utc

TRADING_DAYS_PER_YEAR = 252


def closed_trades(trades: List[Trade]) -> List[Trade]:
    return [t for t in trades if t.status == "closed"]


def sort_by_entry(trades: List[Trade]) -> List[Trade]:
    return sorted(trades, key=lambda t: to_utc(t.entry_time))


def compute_summary(trades: List[Trade]) -> AnalyticsSummary:
    """
    Closed-form performance snapshot over a (filtered) trade list.

    Only closed trades feed realized statistics; open trades contribute
    their pnl to unrealized_pnl. A trade with pnl <= 0 is a loss.
    """
    closed = closed_trades(trades)
    wins = [t for t in closed if t.is_win]
    losses = [t for t in closed if not t.is_win]

    total_pnl = sum(t.pnl for t in closed)
    unrealized_pnl = sum(t.pnl for t in trades if t.status == "open")
    total_volume = sum(t.notional for t in closed)
    total_fees = sum(t.fees for t in closed)
    total_maker_rebates = sum(t.maker_rebate for t in closed)

    longs = [t for t in closed if t.side == "long"]
    shorts = [t for t in closed if t.side == "short"]

    durations = [minutes_between(t.exit_time, t.entry_time) for t in closed if t.exit_time]
    avg_duration = sum(durations) / len(durations) if durations else 0.0

    gross_wins = sum(t.pnl for t in wins)
    gross_losses = abs(sum(t.pnl for t in losses))

    sorted_closed = sort_by_entry(closed)
    max_drawdown, peak = _max_drawdown(sorted_closed)
    current_streak, best_streak, worst_streak = _streaks(sorted_closed)
    sharpe, sortino = compute_ratios(sorted_closed)

    if gross_losses > 0:
        profit_factor = gross_wins / gross_losses
    elif gross_wins > 0:
        profit_factor = math.inf
    else:
        profit_factor = 0.0

    count = len(closed)
    expectancy = 0.0
    if count:
        win_rate_frac = len(wins) / count
        loss_rate_frac = len(losses) / count
        avg_win_abs = gross_wins / max(len(wins), 1)
        avg_loss_abs = gross_losses / max(len(losses), 1)
        expectancy = win_rate_frac * avg_win_abs - loss_rate_frac * avg_loss_abs

    return AnalyticsSummary(
        total_pnl=total_pnl,
        unrealized_pnl=unrealized_pnl,
        total_volume=total_volume,
        total_fees=total_fees,
        total_maker_rebates=total_maker_rebates,
        net_fees=total_fees - total_maker_rebates,
        win_rate=(len(wins) / count) * 100 if count else 0.0,
        total_trades=count,
        win_count=len(wins),
        loss_count=len(losses),
        avg_trade_duration=avg_duration,
        long_count=len(longs),
        short_count=len(shorts),
        long_pnl=sum(t.pnl for t in longs),
        short_pnl=sum(t.pnl for t in shorts),
        largest_win=max((t.pnl for t in wins), default=0.0),
        largest_loss=min((t.pnl for t in losses), default=0.0),
        avg_win=gross_wins / len(wins) if wins else 0.0,
        avg_loss=-gross_losses / len(losses) if losses else 0.0,
        max_drawdown=max_drawdown,
        max_drawdown_percent=(max_drawdown / peak) * 100 if peak > 0 else 0.0,
        profit_factor=profit_factor,
        expectancy=expectancy,
        current_streak=current_streak,
        best_streak=best_streak,
        worst_streak=worst_streak,
        sharpe_ratio=sharpe,
        sortino_ratio=sortino,
    )


def _max_drawdown(sorted_closed: List[Trade]) -> Tuple[float, float]:
    """Returns (max drawdown, final running peak) of cumulative pnl."""
    peak = 0.0
    cum_pnl = 0.0
    max_dd = 0.0
    for t in sorted_closed:
        cum_pnl += t.pnl
        if cum_pnl > peak:
            peak = cum_pnl
        dd = peak - cum_pnl
        if dd > max_dd:
            max_dd = dd
    return max_dd, peak


def _streaks(sorted_closed: List[Trade]) -> Tuple[int, int, int]:
    """
    Signed streak counter: +n for n wins in a row, -n for n losses.
    Returns (current, best, worst).
    """
    streak = 0
    best = 0
    worst = 0
    for t in sorted_closed:
        if t.is_win:
            streak = streak + 1 if streak > 0 else 1
        else:
            streak = streak - 1 if streak < 0 else -1
        best = max(best, streak)
        worst = min(worst, streak)
    return streak, best, worst


def compute_ratios(sorted_closed: List[Trade]) -> Tuple[float, float]:
    """
    Annualised Sharpe and Sortino over daily pnl sums.

    Sharpe divides by the sample stddev (n - 1). Sortino's downside
    deviation sums squared negative returns and divides by n.
    """
    if len(sorted_closed) < 2:
        return 0.0, 0.0

    daily: Dict[str, float] = {}
    for t in sorted_closed:
        day = day_key(t.exit_time or t.entry_time)
        daily[day] = daily.get(day, 0.0) + t.pnl

    returns = list(daily.values())
    n = len(returns)
    if n < 2:
        return 0.0, 0.0

    mean = sum(returns) / n
    variance = sum((r - mean) ** 2 for r in returns) / (n - 1)
    stddev = math.sqrt(variance)
    sharpe = (mean / stddev) * math.sqrt(TRADING_DAYS_PER_YEAR) if stddev > 0 else 0.0

    downside_variance = sum(r ** 2 for r in returns if r < 0) / n
    downside_dev = math.sqrt(downside_variance)
    sortino = (mean / downside_dev) * math.sqrt(TRADING_DAYS_PER_YEAR) if downside_dev > 0 else 0.0

    return sharpe, sortino

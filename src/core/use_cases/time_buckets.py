"""
Time-bucketed reporters.

Each reporter groups closed trades by a key and reduces every bucket to
pnl / count / win rate. A win is pnl > 0 throughout.
"""
from typing import Dict, List

from src.core.entities.analytics import (
    DailyPnl,
    DrawdownPoint,
    HourlyPerformance,
    MonthlyReturn,
    OrderTypePerformance,
    SessionPerformance,
    SymbolPerformance,
)
from src.core.entities.trade import Trade
from src.core.use_cases.calendar import day_key, month_key, to_utc, utc_hour
from src.core.use_cases.summary_aggregator import closed_trades, sort_by_entry

SESSIONS = ("Asian", "European", "US")
ORDER_TYPES = ("limit", "market", "ioc")
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


class _Bucket:
    __slots__ = ("pnl", "count", "wins")

    def __init__(self):
        self.pnl = 0.0
        self.count = 0
        self.wins = 0

    def add(self, trade: Trade):
        self.pnl += trade.pnl
        self.count += 1
        if trade.is_win:
            self.wins += 1

    @property
    def win_rate(self) -> float:
        return (self.wins / self.count) * 100 if self.count else 0.0

    @property
    def avg_pnl(self) -> float:
        return self.pnl / self.count if self.count else 0.0


def _closed_with_exit(trades: List[Trade]) -> List[Trade]:
    exited = [t for t in trades if t.status == "closed" and t.exit_time]
    return sorted(exited, key=lambda t: to_utc(t.exit_time))


def compute_daily_pnl(trades: List[Trade]) -> List[DailyPnl]:
    """
    Sparse per-day series keyed on exit day, ascending, with a running
    cumulative pnl. Days without exits are not synthesised.
    """
    days: Dict[str, Dict[str, float]] = {}
    for t in _closed_with_exit(trades):
        day = days.setdefault(day_key(t.exit_time), {"pnl": 0.0, "count": 0, "volume": 0.0, "fees": 0.0})
        day["pnl"] += t.pnl
        day["count"] += 1
        day["volume"] += t.notional
        day["fees"] += t.fees

    result = []
    cumulative = 0.0
    for key in sorted(days):
        data = days[key]
        cumulative += data["pnl"]
        result.append(DailyPnl(
            date=key,
            pnl=data["pnl"],
            cumulative_pnl=cumulative,
            trade_count=int(data["count"]),
            volume=data["volume"],
            fees=data["fees"],
        ))
    return result


def compute_drawdown(daily_pnl: List[DailyPnl]) -> List[DrawdownPoint]:
    peak = 0.0
    points = []
    for d in daily_pnl:
        if d.cumulative_pnl > peak:
            peak = d.cumulative_pnl
        drawdown = peak - d.cumulative_pnl
        points.append(DrawdownPoint(
            date=d.date,
            drawdown=drawdown,
            drawdown_percent=(drawdown / peak) * 100 if peak > 0 else 0.0,
        ))
    return points


def session_for_hour(hour: int) -> str:
    if 0 <= hour < 8:
        return "Asian"
    if 8 <= hour < 16:
        return "European"
    return "US"


def compute_session_performance(trades: List[Trade]) -> List[SessionPerformance]:
    buckets = {s: _Bucket() for s in SESSIONS}
    for t in closed_trades(trades):
        buckets[session_for_hour(utc_hour(t.entry_time))].add(t)

    return [
        SessionPerformance(
            session=s,
            pnl=buckets[s].pnl,
            trade_count=buckets[s].count,
            win_rate=buckets[s].win_rate,
            avg_pnl=buckets[s].avg_pnl,
        )
        for s in SESSIONS
    ]


def compute_hourly_performance(trades: List[Trade]) -> List[HourlyPerformance]:
    buckets = [_Bucket() for _ in range(24)]
    for t in closed_trades(trades):
        buckets[utc_hour(t.entry_time)].add(t)

    return [
        HourlyPerformance(hour=h, pnl=b.pnl, trade_count=b.count, win_rate=b.win_rate)
        for h, b in enumerate(buckets)
    ]


def compute_order_type_performance(trades: List[Trade]) -> List[OrderTypePerformance]:
    buckets = {ot: _Bucket() for ot in ORDER_TYPES}
    for t in closed_trades(trades):
        buckets[t.order_type].add(t)

    return [
        OrderTypePerformance(
            order_type=ot,
            pnl=buckets[ot].pnl,
            trade_count=buckets[ot].count,
            win_rate=buckets[ot].win_rate,
            avg_pnl=buckets[ot].avg_pnl,
        )
        for ot in ORDER_TYPES
    ]


def compute_symbol_performance(trades: List[Trade]) -> List[SymbolPerformance]:
    """
    Per-symbol breakdown sorted by total pnl, best first.
    avg_trade_size is unlevered notional (size * entry_price).
    """
    by_symbol: Dict[str, List[Trade]] = {}
    for t in closed_trades(trades):
        by_symbol.setdefault(t.symbol, []).append(t)

    results = []
    for symbol, sym_trades in by_symbol.items():
        ordered = sort_by_entry(sym_trades)
        pnls = [t.pnl for t in ordered]
        sizes = [t.size * t.entry_price for t in ordered]

        trend = []
        cum = 0.0
        for p in pnls:
            cum += p
            trend.append(cum)

        results.append(SymbolPerformance(
            symbol=symbol,
            pnl=sum(pnls),
            trade_count=len(ordered),
            win_rate=(sum(1 for t in ordered if t.is_win) / len(ordered)) * 100,
            avg_trade_size=sum(sizes) / len(sizes),
            best_trade=max(pnls),
            worst_trade=min(pnls),
            pnl_trend=trend,
        ))

    results.sort(key=lambda r: r.pnl, reverse=True)
    return results


def _month_label(month: str) -> str:
    # Fixed English names; strftime("%b") follows the process locale
    year, number = month.split("-")
    return f"{MONTH_ABBREVIATIONS[int(number) - 1]} {year}"


def compute_monthly_returns(trades: List[Trade]) -> List[MonthlyReturn]:
    months: Dict[str, _Bucket] = {}
    month_days: Dict[str, Dict[str, float]] = {}
    for t in _closed_with_exit(trades):
        month = month_key(t.exit_time)
        day = day_key(t.exit_time)
        months.setdefault(month, _Bucket()).add(t)
        daily = month_days.setdefault(month, {})
        daily[day] = daily.get(day, 0.0) + t.pnl

    results = []
    for month in sorted(months):
        bucket = months[month]
        day_values = list(month_days[month].values())
        results.append(MonthlyReturn(
            month=month,
            label=_month_label(month),
            pnl=bucket.pnl,
            trade_count=bucket.count,
            win_rate=bucket.win_rate,
            best_day=max(day_values),
            worst_day=min(day_values),
        ))
    return results

"""
Tests for the daily, session, hourly, order-type, symbol and monthly reporters.
"""
from datetime import datetime, timedelta, timezone

import pytest

from src.core.use_cases.summary_aggregator import compute_summary
from src.core.use_cases.time_buckets import (
    compute_daily_pnl,
    compute_drawdown,
    compute_hourly_performance,
    compute_monthly_returns,
    compute_order_type_performance,
    compute_session_performance,
    compute_symbol_performance,
    session_for_hour,
)
from tests.conftest import BASE_TIME


def _at(hour: int, day: int = 6, month: int = 1) -> datetime:
    return datetime(2025, month, day, hour, 0, tzinfo=timezone.utc)


def test_fixed_cardinalities_on_empty_input():
    assert [s.session for s in compute_session_performance([])] == ["Asian", "European", "US"]
    assert len(compute_hourly_performance([])) == 24
    assert [o.order_type for o in compute_order_type_performance([])] == ["limit", "market", "ioc"]
    assert compute_daily_pnl([]) == []
    assert compute_monthly_returns([]) == []
    assert compute_symbol_performance([]) == []


def test_session_boundaries():
    assert session_for_hour(0) == "Asian"
    assert session_for_hour(7) == "Asian"
    assert session_for_hour(8) == "European"
    assert session_for_hour(15) == "European"
    assert session_for_hour(16) == "US"
    assert session_for_hour(23) == "US"


def test_daily_pnl_is_keyed_on_exit_day_with_running_total(make_trade):
    trades = [
        make_trade(10, idx=0, entry_time=_at(9), fees=1.0),
        make_trade(-4, idx=1, entry_time=_at(10)),
        # entered late on the 6th, exits on the 7th
        make_trade(20, idx=2, entry_time=_at(23, day=6), exit_time=_at(1, day=7)),
        make_trade(99, idx=3, entry_time=_at(11), status="open", exit_time=None, exit_price=None),
    ]
    daily = compute_daily_pnl(trades)

    assert [d.date for d in daily] == ["2025-01-06", "2025-01-07"]
    assert daily[0].pnl == 6
    assert daily[0].trade_count == 2
    assert daily[0].fees == 1.0
    assert daily[1].cumulative_pnl == 26
    assert daily[-1].cumulative_pnl == sum(d.pnl for d in daily)


def test_drawdown_series(make_trade):
    trades = [
        make_trade(100, idx=0, entry_time=_at(9, day=6)),
        make_trade(-60, idx=1, entry_time=_at(9, day=7)),
        make_trade(80, idx=2, entry_time=_at(9, day=8)),
    ]
    points = compute_drawdown(compute_daily_pnl(trades))

    assert [p.drawdown for p in points] == [0, 60, 0]
    assert points[1].drawdown_percent == pytest.approx(60.0)


def test_drawdown_percent_zero_without_positive_peak(make_trade):
    points = compute_drawdown(compute_daily_pnl([make_trade(-10)]))
    assert points[0].drawdown == 10
    assert points[0].drawdown_percent == 0


def test_sessions_bucket_by_entry_hour(make_trade):
    trades = [
        make_trade(10, idx=0, entry_time=_at(3)),
        make_trade(-5, idx=1, entry_time=_at(8)),
        make_trade(6, idx=2, entry_time=_at(16)),
        make_trade(4, idx=3, entry_time=_at(20)),
    ]
    sessions = {s.session: s for s in compute_session_performance(trades)}

    assert sessions["Asian"].trade_count == 1
    assert sessions["European"].win_rate == 0
    assert sessions["US"].pnl == 10
    assert sessions["US"].avg_pnl == 5
    assert sessions["US"].win_rate == 100


def test_hourly_counts_sum_to_closed_trades(trades_from_pnls):
    trades = trades_from_pnls([1, 2, -3, 4, 0])
    hourly = compute_hourly_performance(trades)
    assert sum(h.trade_count for h in hourly) == 5
    assert hourly[BASE_TIME.hour].pnl == 1


def test_order_type_buckets(make_trade):
    trades = [
        make_trade(10, idx=0, order_type="limit"),
        make_trade(-2, idx=1, order_type="limit"),
        make_trade(3, idx=2, order_type="ioc"),
    ]
    by_type = {o.order_type: o for o in compute_order_type_performance(trades)}
    assert by_type["limit"].trade_count == 2
    assert by_type["limit"].win_rate == 50
    assert by_type["limit"].avg_pnl == 4
    assert by_type["market"].trade_count == 0


def test_symbol_performance_sorted_by_pnl(make_trade):
    trades = [
        make_trade(-10, idx=0, symbol="SOL/USDC", market_type="spot"),
        make_trade(30, idx=1, symbol="WETH-PERP", size=2.0, entry_price=50.0, leverage=5),
        make_trade(-5, idx=2, symbol="WETH-PERP"),
    ]
    perf = compute_symbol_performance(trades)

    assert [p.symbol for p in perf] == ["WETH-PERP", "SOL/USDC"]
    weth = perf[0]
    assert weth.pnl == 25
    assert weth.best_trade == 30
    assert weth.worst_trade == -5
    assert weth.pnl_trend == [30, 25]
    # unlevered notional
    assert weth.avg_trade_size == pytest.approx(100.0)


def test_monthly_returns(make_trade):
    trades = [
        make_trade(10, idx=0, entry_time=_at(9, day=5)),
        make_trade(-30, idx=1, entry_time=_at(9, day=6)),
        make_trade(5, idx=2, entry_time=_at(10, day=6)),
        make_trade(7, idx=3, entry_time=_at(9, day=3, month=2)),
    ]
    months = compute_monthly_returns(trades)

    assert [m.month for m in months] == ["2025-01", "2025-02"]
    assert months[0].label == "Jan 2025"
    assert months[0].pnl == -15
    assert months[0].best_day == 10
    assert months[0].worst_day == -25
    assert months[1].trade_count == 1


def test_month_label_uses_english_abbreviations(make_trade):
    months = compute_monthly_returns([make_trade(1, entry_time=_at(9, day=15, month=12))])
    assert months[0].label == "Dec 2025"


def test_naive_timestamps_are_treated_as_utc(make_trade):
    naive = BASE_TIME.replace(tzinfo=None) - timedelta(hours=BASE_TIME.hour)
    daily = compute_daily_pnl([make_trade(5, entry_time=naive)])
    assert daily[0].date == "2025-01-06"


def test_summary_drawdown_matches_daily_series(make_trade):
    trades = [
        make_trade(pnl, idx=i, entry_time=_at(9, day=6 + i))
        for i, pnl in enumerate([50, -200, 30, 80])
    ]
    points = compute_drawdown(compute_daily_pnl(trades))

    assert compute_summary(trades).max_drawdown == max(p.drawdown for p in points)
    assert compute_summary(trades).max_drawdown == 200
